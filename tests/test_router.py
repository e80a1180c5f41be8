from __future__ import annotations

import pytest

from relaybot.models.update import Message
from relaybot.services.ai_responder import ERROR_MESSAGE
from relaybot.services.router import (
    FORWARD_ACK,
    UNKNOWN_TARGET,
    extract_target_user_id,
)
from tests.conftest import ADMIN, USER, FakeCompletionClient, completion, forwarded, make_update

PHOTO = {"photo": [{"file_id": "small", "width": 90}, {"file_id": "large", "width": 1280}]}


def forward_text(text: str = "hello") -> str:
    return f"Message from Sam (@someone):\n\n{text}\n\nUser ID: {USER}"


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Message from Sam:\n\nhi\n\nUser ID: 42", "42"),
        ("User ID: 42", "42"),
        ("User ID: abc", None),
        ("user id: 42", None),
        ("no footer here", None),
    ],
)
def test_extract_target_user_id(text, expected) -> None:
    replied = Message.model_validate({"message_id": 1, "text": text})
    assert extract_target_user_id(replied) == expected


def test_extract_target_user_id_reads_caption() -> None:
    replied = Message.model_validate({"message_id": 1, "caption": "Photo from x\n\nUser ID: 7"})
    assert extract_target_user_id(replied) == "7"
    assert extract_target_user_id(None) is None


def test_scenario_user_ai_then_admin_reply(container, telegram, completion_client) -> None:
    container.router.handle_update(make_update(USER, "/start"))
    assert container.responder.is_enabled_for(USER) is True

    container.router.handle_update(make_update(USER, "hello", update_id=2))

    assert completion_client.requests[0]["messages"][1:] == [{"role": "user", "content": "hello"}]
    assert container.history.get(USER)[0].role == "user"
    assert container.history.get(USER)[0].text == "hello"
    assert telegram.messages_to(ADMIN) == [forward_text("hello")]
    assert telegram.messages_to(USER)[-1] == "Hi there!"

    container.router.handle_update(
        make_update(ADMIN, "hi", update_id=3, reply_to=forwarded(forward_text("hello")))
    )

    assert telegram.messages_to(USER)[-1] == "hi"
    assert telegram.messages_to(ADMIN)[-1] == "Message sent to user."


def test_ai_disabled_text_is_forwarded_and_acknowledged(container, telegram, completion_client) -> None:
    container.router.handle_update(make_update(USER, "/ai off"))
    container.router.handle_update(make_update(USER, "need a human", update_id=2))

    assert completion_client.requests == []
    assert telegram.messages_to(ADMIN) == [forward_text("need a human")]
    assert telegram.messages_to(USER)[-1] == FORWARD_ACK


def test_first_message_registers_user(container) -> None:
    container.router.handle_update(make_update(USER, "hello", username=None, first_name=None))

    record = container.store.get_user(USER)
    assert record.username == "unknown"
    assert record.first_name == "unknown"


def test_forward_uses_placeholders_for_missing_names(container, telegram) -> None:
    container.router.handle_update(make_update(USER, "hey", username=None, first_name=None))

    assert telegram.messages_to(ADMIN) == [f"Message from Unknown (@no_username):\n\nhey\n\nUser ID: {USER}"]


def test_ai_failure_apologises(container, telegram) -> None:
    def boom(**_):
        raise RuntimeError("down")

    container.responder._client = FakeCompletionClient(boom)
    container.router.handle_update(make_update(USER, "hello"))

    assert telegram.messages_to(USER)[-1] == ERROR_MESSAGE
    assert telegram.messages_to(ADMIN) == [forward_text("hello")]


def test_photo_forwarded_despite_one_admin_failing(container, telegram) -> None:
    container.store.save_admins([ADMIN, "1002", "1003"])
    telegram.failing["1002"] = "Forbidden: bot was blocked by the user"

    container.router.handle_update(make_update(USER, caption="look", **PHOTO))

    caption = f"Photo from Sam (@someone):\n\nlook\n\nUser ID: {USER}"
    assert telegram.sent_to(ADMIN) == [("photo", ADMIN, "large", caption)]
    assert telegram.sent_to("1003") == [("photo", "1003", "large", caption)]
    assert telegram.sent_to("1002") == []


def test_text_forward_survives_admin_failure(container, telegram) -> None:
    container.store.save_admins([ADMIN, "1002", "1003"])
    telegram.failing["1002"] = "Forbidden"
    container.router.handle_update(make_update(USER, "/ai off"))

    container.router.handle_update(make_update(USER, "hello", update_id=2))

    assert telegram.messages_to(ADMIN) == [forward_text()]
    assert telegram.messages_to("1003") == [forward_text()]
    assert telegram.messages_to(USER)[-1] == FORWARD_ACK


@pytest.mark.parametrize(
    "fields, expected",
    [
        ({"video": {"file_id": "v1"}}, ("video", "v1", "Video from Sam (@someone):\n\nNo caption\n\nUser ID: 2001")),
        ({"document": {"file_id": "d1"}, "caption": "cv"}, ("document", "d1", "Document from Sam (@someone):\n\ncv\n\nUser ID: 2001")),
        ({"audio": {"file_id": "a1"}}, ("audio", "a1", "Audio from Sam (@someone):\n\nNo caption\n\nUser ID: 2001")),
        ({"voice": {"file_id": "n1"}, "caption": "ignored"}, ("voice", "n1", "Voice message from Sam (@someone)\n\nUser ID: 2001")),
    ],
)
def test_media_captions(container, telegram, fields, expected) -> None:
    container.router.handle_update(make_update(USER, **fields))

    kind, file_id, caption = expected
    assert telegram.sent_to(ADMIN) == [(kind, ADMIN, file_id, caption)]


def test_sticker_followed_by_identifying_text(container, telegram) -> None:
    container.router.handle_update(make_update(USER, sticker={"file_id": "s1", "emoji": "👍"}))

    assert telegram.sent_to(ADMIN) == [
        ("sticker", ADMIN, "s1", None),
        ("message", ADMIN, f"Sticker from Sam (@someone)\n\nUser ID: {USER}"),
    ]


def test_media_acknowledged_only_when_ai_disabled(container, telegram, completion_client) -> None:
    container.router.handle_update(make_update(USER, **PHOTO))
    assert telegram.messages_to(USER) == []
    assert completion_client.requests == []

    container.router.handle_update(make_update(USER, "/ai off", update_id=2))
    container.router.handle_update(make_update(USER, update_id=3, **PHOTO))
    assert telegram.messages_to(USER)[-1] == FORWARD_ACK


def test_admin_media_reply_is_delivered(container, telegram) -> None:
    container.router.handle_update(
        make_update(ADMIN, caption="here you go", reply_to=forwarded(forward_text()), **PHOTO)
    )

    assert telegram.sent_to(USER) == [("photo", USER, "large", "here you go")]
    assert telegram.messages_to(ADMIN) == ["Media sent to user."]


def test_admin_reply_to_blocked_user(container, telegram) -> None:
    telegram.failing[USER] = "Forbidden: bot was blocked by the user"

    container.router.handle_update(make_update(ADMIN, "hi", reply_to=forwarded(forward_text())))
    container.router.handle_update(
        make_update(ADMIN, reply_to=forwarded(forward_text()), update_id=2, voice={"file_id": "n1"})
    )

    assert telegram.messages_to(ADMIN) == [
        "Failed to send message: Forbidden: bot was blocked by the user",
        "Failed to send media: Forbidden: bot was blocked by the user",
    ]


def test_admin_reply_without_footer(container, telegram) -> None:
    container.router.handle_update(make_update(ADMIN, "hi", reply_to=forwarded("some other message")))

    assert telegram.messages_to(ADMIN) == [UNKNOWN_TARGET]
    assert telegram.sent_to(USER) == []


def test_admin_plain_message_is_ignored(container, telegram, completion_client) -> None:
    container.router.handle_update(make_update(ADMIN, "just talking"))

    assert telegram.calls == []
    assert completion_client.requests == []
    assert container.store.get_user(ADMIN) is None


def test_non_admin_reply_never_routes_to_footer_user(container, telegram) -> None:
    container.router.handle_update(make_update("3003", "hi", reply_to=forwarded(forward_text())))

    assert telegram.sent_to(USER) == []
    assert telegram.messages_to(ADMIN) == [
        "Message from Sam (@someone):\n\nhi\n\nUser ID: 3003"
    ]


def test_commands_take_precedence_over_replies(container, telegram) -> None:
    container.router.handle_update(make_update(ADMIN, "/aimode off", reply_to=forwarded(forward_text())))

    assert telegram.sent_to(USER) == []
    assert telegram.messages_to(ADMIN) == ["AI mode has been turned OFF globally."]


def test_unsupported_updates_are_ignored(container, telegram) -> None:
    container.router.handle_update(make_update(USER, location={"latitude": 1.0, "longitude": 2.0}))
    container.router.handle_update(make_update(USER).model_copy(update={"message": None}))

    assert telegram.calls == []
    assert container.store.get_user(USER) is None


def test_long_ai_reply_is_split(container, telegram) -> None:
    container.responder._client = FakeCompletionClient(lambda **_: completion("z" * 5000))
    container.router.handle_update(make_update(USER, "essay please"))

    assert telegram.messages_to(USER) == ["z" * 4096, "z" * 904]
