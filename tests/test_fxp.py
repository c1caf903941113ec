import pytest

from fxp_client.core import (
    CancelToken,
    CommandFailed,
    ConnectionFailed,
    FxpSessionNegotiator,
    MalformedResponse,
    OperationCancelled,
    Reply,
)

PASV_OK = Reply("227", "Entering Passive Mode (10,0,0,5,23,45).")
CPSV_OK = Reply("227", "Entering Passive Mode (192,168,1,2,4,1)")
PASV_REFUSED = Reply("435", "Failed TLS negotiation on data channel")
CPSV_REFUSED = Reply("500", "CPSV not understood")


@pytest.fixture
def negotiator():
    return FxpSessionNegotiator()


def negotiate(run, negotiator, source, target, track_progress=False, token=None):
    return run(
        lambda: negotiator.negotiate(source, target, track_progress, token),
        lambda: negotiator.negotiate_async(source, target, track_progress, token),
    )


def test_negotiate_happy_path(run, negotiator, make_client):
    source = make_client("source")
    target = make_client("target", replies={"PASV": [PASV_OK]})

    session = negotiate(run, negotiator, source, target)

    assert session.source is source
    assert session.target is target
    assert session.progress is None
    assert target.calls == ["TYPE I", "PASV"]
    assert source.calls == ["TYPE I", "PORT 10,0,0,5,23,45"]


def test_data_type_is_set_before_passive_request(run, negotiator, make_client):
    order = []
    source = make_client("source")
    target = make_client("target", replies={"PASV": [PASV_OK]})
    for client in (source, target):
        original = client.execute

        async def execute(command, token=None, _client=client, _original=original):
            order.append((_client.name, command.split()[0]))
            return await _original(command, token)

        client.execute = execute

    negotiate(run, negotiator, source, target)

    assert order == [
        ("source", "TYPE"),
        ("target", "TYPE"),
        ("target", "PASV"),
        ("source", "PORT"),
    ]


def test_fallback_used_when_primary_fails(run, negotiator, make_client):
    source = make_client("source")
    target = make_client("target", replies={"PASV": [PASV_REFUSED], "CPSV": [CPSV_OK]})

    negotiate(run, negotiator, source, target)

    assert target.calls == ["TYPE I", "PASV", "CPSV"]
    assert source.calls[-1] == "PORT 192,168,1,2,4,1"


def test_both_passive_commands_fail_reports_primary_reply(run, negotiator, make_client):
    source = make_client("source")
    target = make_client("target", replies={"PASV": [PASV_REFUSED], "CPSV": [CPSV_REFUSED]})

    with pytest.raises(CommandFailed) as excinfo:
        negotiate(run, negotiator, source, target)

    assert excinfo.value.reply is PASV_REFUSED
    assert not any(call.startswith("PORT") for call in source.calls)


def test_malformed_pasv_reply_is_not_retried(run, negotiator, make_client):
    source = make_client("source")
    target = make_client("target", replies={"PASV": [Reply("227", "Entering Passive Mode")]})

    with pytest.raises(MalformedResponse) as excinfo:
        negotiate(run, negotiator, source, target)

    assert excinfo.value.raw == "Entering Passive Mode"
    assert "CPSV" not in target.calls
    assert source.calls == ["TYPE I"]


def test_port_failure_carries_port_reply(run, negotiator, make_client):
    refused = Reply("500", "Illegal PORT command")
    source = make_client("source", replies={"PORT": [refused]})
    target = make_client("target", replies={"PASV": [PASV_OK]})

    with pytest.raises(CommandFailed) as excinfo:
        negotiate(run, negotiator, source, target)

    assert excinfo.value.reply is refused


def test_data_type_failure_is_not_rolled_back(run, negotiator, make_client):
    source = make_client("source")
    target = make_client("target", replies={"TYPE": [Reply("504", "Type not implemented")]})

    with pytest.raises(CommandFailed):
        negotiate(run, negotiator, source, target)

    assert source.calls == ["TYPE I"]
    assert target.calls == ["TYPE I"]


def test_progress_connection_follows_target_directory(run, negotiator, make_client):
    source = make_client("source")
    target = make_client("target", replies={"PASV": [PASV_OK]}, cwd="/incoming/releases")

    session = negotiate(run, negotiator, source, target, track_progress=True)

    progress = session.progress
    assert progress is target.clones[0]
    assert progress is not target
    assert progress.config == target.config
    assert progress.auto_released
    assert progress.calls == ["connect", "CWD /incoming/releases"]
    assert progress.cwd == "/incoming/releases"
    # the progress connection takes no part in the passive negotiation
    assert "PASV" not in progress.calls

    run(session.close, session.aclose)
    assert progress.closed
    assert session.progress is None


def test_progress_connect_failure_aborts_negotiation(run, negotiator, make_client):
    source = make_client("source")
    target = make_client("target", replies={"PASV": [PASV_OK]},
                         connect_error=ConnectionFailed("refused"))

    with pytest.raises(ConnectionFailed):
        negotiate(run, negotiator, source, target, track_progress=True)

    assert source.calls == []
    assert target.calls == []


def test_failure_after_progress_hands_session_to_caller(run, negotiator, make_client):
    source = make_client("source")
    target = make_client("target", replies={"PASV": [PASV_REFUSED], "CPSV": [CPSV_REFUSED]})

    with pytest.raises(CommandFailed) as excinfo:
        negotiate(run, negotiator, source, target, track_progress=True)

    partial = excinfo.value.session
    assert partial is not None
    assert partial.progress is target.clones[0]
    run(partial.close, partial.aclose)
    assert target.clones[0].closed


def test_cancelled_before_start_sends_nothing(run, negotiator, make_client):
    source = make_client("source")
    target = make_client("target", replies={"PASV": [PASV_OK]})
    token = CancelToken()
    token.cancel()

    with pytest.raises(OperationCancelled):
        negotiate(run, negotiator, source, target, track_progress=True, token=token)

    assert target.clones == []
    assert source.calls == []
    assert target.calls == []


def test_cancelled_mid_negotiation(run, negotiator, make_client):
    token = CancelToken()
    source = make_client("source")
    target = make_client("target", replies={"PASV": [PASV_OK]})
    original = target.execute

    async def execute(command, token_=None):
        reply = await original(command, token_)
        if command == "PASV":
            token.cancel()
        return reply

    target.execute = execute

    with pytest.raises(OperationCancelled):
        negotiate(run, negotiator, source, target, token=token)

    assert source.calls == ["TYPE I"]


def test_blocking_mode_rejects_suspending_clients(negotiator, fake_client):
    source = fake_client("source", suspend=True)
    target = fake_client("target", suspend=True, replies={"PASV": [PASV_OK]})
    with pytest.raises(RuntimeError):
        negotiator.negotiate(source, target)



def test_session_involves_only_its_peers(run, negotiator, make_client):
    source = make_client("source")
    target = make_client("target", replies={"PASV": [PASV_OK]})

    session = negotiate(run, negotiator, source, target, track_progress=True)

    assert session.involves(source)
    assert session.involves(target)
    assert not session.involves(session.progress)
    assert not session.involves(make_client("other"))
