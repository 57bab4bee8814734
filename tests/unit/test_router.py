"""Unit tests for request routing and dispatch."""

import pytest

from agenthub_server.models.chat import AgentDescriptor, ChatRequest
from agenthub_server.routing import (
    AdapterKind,
    ChatDispatcher,
    RequestRouter,
    RoutingError,
    parse_mentions,
    strip_mention,
)
from agenthub_server.sessions import GROUP_SESSION_KEY


@pytest.fixture
def router():
    return RequestRouter(orchestrator_working_directory="/tmp/orchestrator")


def make_request(message, roster, working_directory="/tmp/orchestrator", **kwargs):
    return ChatRequest(
        message=message,
        request_id="req-1",
        working_directory=working_directory,
        available_agents=roster,
        **kwargs,
    )


def test_parse_mentions():
    assert parse_mentions("@readymojo-web build @api_v2 now") == ["readymojo-web", "api_v2"]
    assert parse_mentions("@web and @web again") == ["web", "web"]
    assert parse_mentions("mail me at nobody") == []


def test_strip_mention():
    assert strip_mention("@readymojo-web build the login page", "readymojo-web") == (
        "build the login page"
    )
    assert strip_mention("please @web fix it", "web") == "please fix it"


def test_single_mention_relays_to_worker(router, roster):
    """A message mentioning exactly one worker is relayed to that worker."""
    request = make_request(
        "@readymojo-web build the login page", roster, session_id="sess-9"
    )

    decision = router.route(request)

    assert decision.kind is AdapterKind.RELAY
    assert decision.target.id == "readymojo-web"
    assert decision.request.message == "build the login page"
    assert decision.request.request_id == "req-1"
    assert decision.request.session_id == "sess-9"
    assert decision.session_key == GROUP_SESSION_KEY


def test_no_mention_goes_to_orchestrator(router, roster):
    """An unaddressed message is planned by the orchestrator with the worker roster."""
    decision = router.route(make_request("plan the release", roster))

    assert decision.kind is AdapterKind.ORCHESTRATOR
    assert decision.target.id == "group-chat"
    assert [agent.id for agent in decision.request.available_agents] == [
        "readymojo-web",
        "readymojo-api",
    ]
    assert decision.session_key == GROUP_SESSION_KEY


def test_two_mentions_go_to_orchestrator(router, roster):
    decision = router.route(make_request("@readymojo-web and @readymojo-api sync up", roster))

    assert decision.kind is AdapterKind.ORCHESTRATOR


def test_repeated_mention_goes_to_orchestrator(router, roster):
    """Addressing the same worker twice counts as two mentions."""
    message = "@readymojo-web build the page, then @readymojo-web write the tests"

    decision = router.route(make_request(message, roster))

    assert decision.kind is AdapterKind.ORCHESTRATOR
    assert decision.target.id == "group-chat"
    assert decision.request.message == message


def test_unknown_mention_goes_to_orchestrator(router, roster):
    decision = router.route(make_request("@nobody do something", roster))

    assert decision.kind is AdapterKind.ORCHESTRATOR
    assert decision.request.message == "@nobody do something"


def test_mention_of_orchestrator_is_not_a_relay(router, roster):
    decision = router.route(make_request("@group-chat hello", roster))

    assert decision.kind is AdapterKind.ORCHESTRATOR


def test_mention_of_disabled_worker_goes_to_orchestrator(router, roster):
    roster[1] = roster[1].model_copy(update={"is_enabled": False})

    decision = router.route(make_request("@readymojo-web build it", roster))

    assert decision.kind is AdapterKind.ORCHESTRATOR
    assert [agent.id for agent in decision.request.available_agents] == ["readymojo-api"]


def test_mention_of_worker_without_endpoint_runs_locally(router, roster):
    roster[1] = roster[1].model_copy(update={"api_endpoint": ""})

    decision = router.route(make_request("@readymojo-web build it", roster))

    assert decision.kind is AdapterKind.LOCAL
    assert decision.target.id == "readymojo-web"
    assert decision.request.message == "build it"


def test_worker_directory_routes_locally(router, roster):
    decision = router.route(make_request("fix the bug", roster, "/srv/readymojo-api"))

    assert decision.kind is AdapterKind.LOCAL
    assert decision.target.id == "readymojo-api"
    assert decision.request.message == "fix the bug"
    assert decision.session_key == "readymojo-api"


def test_bare_working_directory_routes_locally(router):
    """A relayed request carries no roster; its directory names the agent."""
    request = ChatRequest(message="hi", request_id="req-1", working_directory="/srv/app")

    decision = router.route(request)

    assert decision.kind is AdapterKind.LOCAL
    assert decision.target.working_directory == "/srv/app"


def test_default_working_directory_is_used():
    router = RequestRouter("/tmp/orchestrator", default_working_directory="/srv/default")

    decision = router.route(ChatRequest(message="hi", request_id="req-1"))

    assert decision.kind is AdapterKind.LOCAL
    assert decision.target.working_directory == "/srv/default"


def test_no_working_directory_fails(router, roster):
    with pytest.raises(RoutingError, match="No valid agent"):
        router.route(ChatRequest(message="hi", request_id="req-1", available_agents=roster))


def test_orchestrator_directory_without_orchestrator_fails(router, roster):
    with pytest.raises(RoutingError, match="No valid agent"):
        router.route(make_request("hi", roster[1:]))


def test_orchestrator_without_workers_fails(router, roster):
    with pytest.raises(RoutingError):
        router.route(make_request("plan it", roster[:1]))


def test_two_enabled_orchestrators_fail(router, roster):
    second = AgentDescriptor(
        id="other-orchestrator",
        working_directory="/tmp/other",
        is_orchestrator=True,
    )

    with pytest.raises(RoutingError, match="More than one enabled orchestrator"):
        router.route(make_request("hi", [*roster, second]))


def test_disabled_second_orchestrator_is_ignored(router, roster):
    second = AgentDescriptor(
        id="other-orchestrator",
        working_directory="/tmp/other",
        is_orchestrator=True,
        is_enabled=False,
    )

    decision = router.route(make_request("hi", [*roster, second]))

    assert decision.kind is AdapterKind.ORCHESTRATOR


def test_routing_is_deterministic(router, roster):
    request = make_request("@readymojo-api add an endpoint", roster)

    decisions = {router.route(request).kind for _ in range(10)}

    assert decisions == {AdapterKind.RELAY}


def test_routing_failure_leaves_no_registry_entry(scripted_dispatcher, registry):
    request = ChatRequest(message="hi", request_id="req-1")

    with pytest.raises(RoutingError):
        scripted_dispatcher.dispatch(request)

    assert len(registry) == 0


def test_dispatcher_requires_every_adapter_kind(scripted_adapter):
    with pytest.raises(ValueError, match="relay"):
        ChatDispatcher(
            RequestRouter("/tmp/orchestrator"),
            {
                AdapterKind.LOCAL: scripted_adapter,
                AdapterKind.ORCHESTRATOR: scripted_adapter,
            },
        )


@pytest.mark.asyncio
async def test_dispatch_streams_from_chosen_adapter(scripted_dispatcher, scripted_adapter, roster):
    request = make_request("@readymojo-web hi", roster)

    events = [event async for event in scripted_dispatcher.dispatch(request)]

    assert [event.type for event in events] == ["data", "done"]
    sent_request, target = scripted_adapter.calls[0]
    assert target.id == "readymojo-web"
    assert sent_request.message == "hi"
