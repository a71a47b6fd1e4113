"""Tests for client data models."""

from src.client.models import AccountInfo, Chat, Message, MessagePreview


class TestWireFormat:
    """Tests for camelCase serialization."""

    def test_chat(self):
        """Test chat fields on the wire."""
        chat = Chat(
            id="1@c.us",
            name="Alice",
            unread_count=3,
            last_message=MessagePreview(body="hi", timestamp=1),
        )

        wire = chat.to_wire()

        assert wire["unreadCount"] == 3
        assert wire["isGroup"] is False
        assert wire["lastMessage"] == {"body": "hi", "timestamp": 1}
        assert "unread_count" not in wire

    def test_message_from_field(self):
        """Test that the sender is serialized as ``from``."""
        message = Message(id="m1", from_="1@c.us", to="2@c.us", has_media=True)

        wire = message.to_wire()

        assert wire["from"] == "1@c.us"
        assert wire["hasMedia"] is True
        assert wire["vCards"] == []

    def test_populate_by_alias(self):
        """Test building models from camelCase input."""
        message = Message.model_validate({"id": "m1", "from": "1@c.us", "fromMe": True})

        assert message.from_ == "1@c.us"
        assert message.from_me is True

    def test_account_info(self):
        """Test account info on the wire."""
        info = AccountInfo(me="1", wid="1@c.us", pushname="Me")

        assert info.to_wire() == {"me": "1", "pushname": "Me", "wid": "1@c.us", "platform": None}
