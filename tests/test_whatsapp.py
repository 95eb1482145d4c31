from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

from macla.channels.twilio_whatsapp import WhatsAppTarget, split_for_whatsapp
from macla.errors import DEFAULT_USER_MESSAGE


def test_split_for_whatsapp_respects_line_boundaries():
    text = "\n".join(["a" * 10] * 5)

    parts = split_for_whatsapp(text, max_len=25)

    assert parts == ["a" * 10 + "\n" + "a" * 10] * 2 + ["a" * 10]
    assert split_for_whatsapp("short") == ["short"]
    assert split_for_whatsapp("x" * 50, max_len=10) == ["x" * 50]


def test_webhook_answers_with_twiml(app, fake_llm):
    fake_llm.chat_mock.return_value = "¡Buenas!"
    client = TestClient(app)

    resp = client.post("/webhook/whatsapp", data={"From": "whatsapp:+5491100000000", "Body": "hola"})

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/xml")
    assert "<Message>¡Buenas!</Message>" in resp.text


def test_webhook_failure_still_answers(app, services):
    services.assistant.handle_message = AsyncMock(side_effect=RuntimeError("boom"))
    client = TestClient(app)

    resp = client.post("/webhook/whatsapp", data={"From": "whatsapp:+1", "Body": "hola"})

    assert resp.status_code == 200
    assert DEFAULT_USER_MESSAGE in resp.text


def test_webhook_registers_push_target_when_sender_configured(app, services):
    services.whatsapp_sender = MagicMock()
    client = TestClient(app)

    client.post("/webhook/whatsapp", data={"From": "whatsapp:+1", "Body": "hola"})

    target = services.directory.resolve("whatsapp:+1")
    assert isinstance(target, WhatsAppTarget)
    assert target.address == "whatsapp:+1"


def test_webhook_without_sender_registers_nothing(app, services):
    client = TestClient(app)

    client.post("/webhook/whatsapp", data={"From": "whatsapp:+1", "Body": "hola"})

    assert services.directory.resolve("whatsapp:+1") is None


def test_voice_note_is_transcribed(app, fake_llm, monkeypatch):
    download = AsyncMock(return_value=b"OggS")
    monkeypatch.setattr("macla.channels.twilio_whatsapp.download_media", download)
    fake_llm.transcribe_mock.return_value = "recordame regar las plantas"
    client = TestClient(app)

    client.post("/webhook/whatsapp", data={
        "From": "whatsapp:+1",
        "Body": "",
        "NumMedia": "1",
        "MediaContentType0": "audio/ogg",
        "MediaUrl0": "https://api.twilio.com/media/1",
    })

    assert download.await_args.args[0] == "https://api.twilio.com/media/1"
    assert fake_llm.transcribe_mock.await_args.kwargs["filename"] == "wa-audio.ogg"
    fake_llm.intent_mock.assert_awaited_with("recordame regar las plantas")


async def test_whatsapp_target_sends_reminder_text():
    sender = MagicMock()
    sender.send = AsyncMock(return_value="SM1")
    target = WhatsAppTarget("whatsapp:+1", sender)

    await target.send_event("reminder:fire", {"id": "r_1", "text": "tomar agua"})

    sender.send.assert_awaited_once_with("whatsapp:+1", "⏰ Recordatorio: tomar agua")


def test_whatsapp_target_expires_after_session_window(directory):
    expired = WhatsAppTarget("whatsapp:+1", MagicMock(), session_hours=0)
    fresh = WhatsAppTarget("whatsapp:+2", MagicMock(), session_hours=24)
    directory.register("whatsapp:+1", expired)
    directory.register("whatsapp:+2", fresh)

    assert expired.is_open is False
    assert directory.resolve("whatsapp:+1") is None
    assert directory.resolve("whatsapp:+2") is fresh
    assert directory.identities() == ["whatsapp:+2"]
