import pytest

from callbridge.schemas.events import (
    CallCompleted,
    CallTranscriptCompleted,
    MessageReceived,
    SourcePlatform,
    ThreadChatSent,
    UnhandledEvent,
)
from callbridge.services.classifier import classify
from callbridge.services.errors import BadPayload


class TestTelephonyEvents:
    def test_message_received(self, message_envelope):
        event = classify(SourcePlatform.TELEPHONY, message_envelope())

        assert isinstance(event, MessageReceived)
        assert event.event_id == "EVmsg1"
        assert event.message.from_number == "+15551234567"
        assert event.message.body == "Hi there"
        assert event.message.media == []

    def test_message_media_parsed_in_order(self, message_envelope):
        media = [
            {"url": "https://files.example.com/a.jpg", "type": "image/jpeg"},
            {"url": "https://files.example.com/b.pdf", "type": "application/pdf"},
        ]
        event = classify(SourcePlatform.TELEPHONY, message_envelope(media=media))

        assert [item.url for item in event.message.media] == [
            "https://files.example.com/a.jpg",
            "https://files.example.com/b.pdf",
        ]

    def test_call_completed(self, call_envelope):
        event = classify(SourcePlatform.TELEPHONY, call_envelope())

        assert isinstance(event, CallCompleted)
        assert event.call.counterparty == "+15551234567"
        assert event.call.duration == 125

    def test_call_transcript_completed(self, transcript_envelope):
        event = classify(SourcePlatform.TELEPHONY, transcript_envelope())

        assert isinstance(event, CallTranscriptCompleted)
        assert event.transcript.callId == "ACcall1"
        assert len(event.transcript.dialogue) == 2

    def test_unknown_type_is_unhandled_not_error(self):
        event = classify(SourcePlatform.TELEPHONY, {"id": "EV9", "type": "contact.updated", "data": {"object": {}}})

        assert isinstance(event, UnhandledEvent)
        assert event.event_type == "contact.updated"
        assert event.source == SourcePlatform.TELEPHONY

    def test_unknown_type_without_data_is_still_unhandled(self):
        event = classify(SourcePlatform.TELEPHONY, {"type": "call.ringing"})
        assert isinstance(event, UnhandledEvent)


class TestTelephonyBadPayload:
    def test_missing_type(self):
        with pytest.raises(BadPayload):
            classify(SourcePlatform.TELEPHONY, {"data": {"object": {}}})

    def test_known_type_without_data(self):
        with pytest.raises(BadPayload) as exc:
            classify(SourcePlatform.TELEPHONY, {"type": "message.received"})
        assert exc.value.code == "bad_payload"

    def test_message_without_sender(self, message_envelope):
        envelope = message_envelope()
        del envelope["data"]["object"]["from"]

        with pytest.raises(BadPayload) as exc:
            classify(SourcePlatform.TELEPHONY, envelope)
        assert "message.received payload" in exc.value.message

    def test_call_without_participants(self, call_envelope):
        envelope = call_envelope()
        envelope["data"]["object"]["participants"] = []

        with pytest.raises(BadPayload):
            classify(SourcePlatform.TELEPHONY, envelope)

    def test_call_without_duration(self, call_envelope):
        envelope = call_envelope()
        del envelope["data"]["object"]["duration"]

        with pytest.raises(BadPayload):
            classify(SourcePlatform.TELEPHONY, envelope)

    def test_non_object_envelope(self):
        with pytest.raises(BadPayload):
            classify(SourcePlatform.TELEPHONY, ["not", "an", "object"])


class TestTicketingEvents:
    def test_thread_chat_sent(self, chat_sent_envelope):
        event = classify(SourcePlatform.TICKETING, chat_sent_envelope())

        assert isinstance(event, ThreadChatSent)
        assert event.phone_number == "+15551234567"
        assert event.text == "Your order ships today"
        assert event.actor_type == "user"

    def test_chat_without_customer_external_id_still_classifies(self, chat_sent_envelope):
        envelope = chat_sent_envelope()
        envelope["payload"]["thread"]["customer"] = {"id": "c_1"}

        event = classify(SourcePlatform.TICKETING, envelope)

        assert isinstance(event, ThreadChatSent)
        assert event.phone_number is None

    def test_chat_without_author(self, chat_sent_envelope):
        envelope = chat_sent_envelope()
        del envelope["payload"]["chat"]["createdBy"]

        event = classify(SourcePlatform.TICKETING, envelope)
        assert event.actor_type is None

    def test_unknown_ticketing_type(self):
        event = classify(SourcePlatform.TICKETING, {"type": "thread.thread_created", "payload": {}})

        assert isinstance(event, UnhandledEvent)
        assert event.source == SourcePlatform.TICKETING

    def test_chat_sent_without_chat_object(self, chat_sent_envelope):
        envelope = chat_sent_envelope()
        del envelope["payload"]["chat"]

        with pytest.raises(BadPayload):
            classify(SourcePlatform.TICKETING, envelope)

    def test_chat_sent_without_payload(self):
        with pytest.raises(BadPayload):
            classify(SourcePlatform.TICKETING, {"type": "thread.chat_sent"})
