from themer_bot.errors import DownloadError
from themer_bot.message_handler import AttachmentMessageHandler


def _event(files, **extra):
    event = {"type": "message", "channel": "C7", "user": "U1", "ts": "1700000000.0001", "files": files}
    event.update(extra)
    return {"type": "event_callback", "event": event}


def _file(file_id, filetype="zip"):
    return {
        "id": file_id,
        "name": f"{file_id}.zip",
        "filetype": filetype,
        "url_private": f"http://x/{file_id}.zip",
    }


def test_successful_message_uploads_without_posting_errors(
    make_zip_bytes, themer_command, build_pipeline, fake_transport_cls, fake_slack_cls
):
    transport = fake_transport_cls({"http://x/F1.zip": make_zip_bytes({"a.txt": b"a"})})
    slack = fake_slack_cls()
    handler = AttachmentMessageHandler(build_pipeline(transport, slack, themer_command), slack)

    assert handler.handle(_event([_file("F1")])) is None
    assert [u["channel"] for u in slack.uploads] == ["C7"]
    assert slack.messages == []


def test_failure_is_reported_back_to_the_channel(
    make_zip_bytes, themer_command, build_pipeline, fake_transport_cls, fake_slack_cls
):
    transport = fake_transport_cls({"http://x/F1.zip": make_zip_bytes({"a.txt": b"a"})})
    slack = fake_slack_cls()
    handler = AttachmentMessageHandler(build_pipeline(transport, slack, themer_command), slack)

    error = handler.handle(_event([_file("F1"), _file("F2")]))

    assert isinstance(error, DownloadError)
    assert len(slack.messages) == 1
    channel, text = slack.messages[0]
    assert channel == "C7"
    assert "F2.zip" in text and "download" in text
    assert "Already delivered: F1" in text


def test_wrong_type_is_reported_and_nothing_uploaded(
    themer_command, build_pipeline, fake_transport_cls, fake_slack_cls
):
    transport = fake_transport_cls({})
    slack = fake_slack_cls()
    handler = AttachmentMessageHandler(build_pipeline(transport, slack, themer_command), slack)

    error = handler.handle(_event([_file("F1", filetype="pdf")]))

    assert error.stage == "validate"
    assert slack.uploads == []
    assert "Wrong file type" in slack.messages[0][1]


def test_reporting_can_be_disabled(themer_command, build_pipeline, fake_transport_cls, fake_slack_cls):
    slack = fake_slack_cls()
    handler = AttachmentMessageHandler(
        build_pipeline(fake_transport_cls({}), slack, themer_command), slack, report_failures=False
    )

    assert handler.handle(_event([_file("F1", filetype="pdf")])) is not None
    assert slack.messages == []


def test_bot_messages_and_messages_without_files_are_ignored(
    themer_command, build_pipeline, fake_transport_cls, fake_slack_cls
):
    transport = fake_transport_cls({})
    slack = fake_slack_cls()
    handler = AttachmentMessageHandler(build_pipeline(transport, slack, themer_command), slack)

    assert handler.handle(_event([_file("F1")], bot_id="B1")) is None
    assert handler.handle(_event([])) is None
    assert transport.calls == []
