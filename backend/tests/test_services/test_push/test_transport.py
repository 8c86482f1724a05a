"""
Tests for the APNs transport facade and push dispatcher.
"""

import time
from unittest.mock import MagicMock, patch

import pytest

from app.services.push import transport as transport_module
from app.services.push.emitter import EventEmitter
from app.services.push.models import Device, Notification
from app.services.push.transport import APNSTransport, push_notification

TOKEN_1 = "aa" * 32
TOKEN_2 = "bb" * 32


class FakeConnection(EventEmitter):
    """Connection double recording submissions."""

    def __init__(self, config, feedback=None):
        super().__init__()
        self.config = config
        self.feedback = feedback
        self.shutdown = MagicMock()
        self.submitted = []

    def push_notification(self, notification, device):
        self.submitted.append((notification, device))


class FakeFeedback(EventEmitter):
    def __init__(self, interval):
        super().__init__()
        self.interval = interval
        self.start = MagicMock()


@pytest.fixture
def transport(apns_config):
    return APNSTransport(
        apns_config,
        prune_devices=MagicMock(),
        connection_factory=FakeConnection,
        feedback_factory=FakeFeedback,
        feedback_interval=30,
    )


class TestAPNSTransport:
    """Tests for connection singleton management."""

    def test_not_connected_initially(self, transport):
        assert transport.is_connected is False
        assert transport.connection is None

    def test_connect_returns_same_instance(self, transport):
        first = transport.connect()

        for _ in range(5):
            assert transport.connect() is first

    def test_listeners_bound_once(self, transport):
        for _ in range(4):
            transport.connect()

        assert transport.connection.listener_count() == 1
        assert transport.feedback.listener_count() == 1

    def test_feedback_injected_into_connection(self, transport):
        connection = transport.connect()

        assert connection.feedback is transport.feedback
        assert transport.feedback.interval == 30

    def test_construction_error_propagates(self, apns_config):
        failing = APNSTransport(
            apns_config,
            prune_devices=MagicMock(),
            connection_factory=MagicMock(side_effect=FileNotFoundError("no key")),
            feedback_factory=FakeFeedback,
        )

        with pytest.raises(FileNotFoundError):
            failing.connect()
        assert failing.is_connected is False

    def test_completed_event_shuts_down_connection(self, transport):
        from app.services.push.events import Completed

        connection = transport.connect()
        connection.emit(Completed())

        connection.shutdown.assert_called_once_with()

    def test_feedback_event_prunes(self, apns_config):
        from app.services.push.events import FeedbackReceived

        prune = MagicMock()
        t = APNSTransport(
            apns_config,
            prune_devices=prune,
            connection_factory=FakeConnection,
            feedback_factory=FakeFeedback,
        )
        t.connect()
        t.feedback.emit(FeedbackReceived(records=[]))

        prune.assert_called_once_with([])

    @pytest.mark.asyncio
    async def test_start_connects_and_starts_feedback(self, transport):
        connection = await transport.start()

        assert connection is transport.connection
        transport.feedback.start.assert_called_once_with()


class TestPushNotification:
    """Tests for the dispatcher."""

    def test_two_tokens(self):
        connection = FakeConnection(config=None)
        callback = MagicMock()

        with patch.object(transport_module, "Device", wraps=Device) as device_cls:
            count = push_notification(connection, [TOKEN_1, TOKEN_2], "Hello", {"id": 1}, callback)

        assert count == 2
        assert device_cls.call_count == 2
        assert [str(d) for _, d in connection.submitted] == [TOKEN_1, TOKEN_2]
        callback.assert_called_once_with(None)

    def test_fresh_notification_per_device(self):
        connection = FakeConnection(config=None)

        push_notification(connection, [TOKEN_1, TOKEN_2], "Hello", {"id": 1})

        first, second = connection.submitted[0][0], connection.submitted[1][0]
        assert first is not second
        assert first.compiled_payload == second.compiled_payload

    def test_notification_contents(self):
        connection = FakeConnection(config=None)
        before = int(time.time())

        push_notification(connection, [TOKEN_1], "Hi", {"k": "v"}, badge=4, sound="chime.aiff", ttl=60)

        notification = connection.submitted[0][0]
        assert isinstance(notification, Notification)
        assert notification.to_apns_dict() == {
            "aps": {"alert": "Hi", "badge": 4, "sound": "chime.aiff"},
            "k": "v",
        }
        assert before + 60 <= notification.expiry <= int(time.time()) + 60

    def test_default_badge_and_sound(self):
        connection = FakeConnection(config=None)

        push_notification(connection, [TOKEN_1], "Hi", {})

        aps = connection.submitted[0][0].to_apns_dict()["aps"]
        assert aps == {"alert": "Hi", "badge": 1, "sound": "ping.aiff"}

    def test_empty_tokens(self):
        connection = FakeConnection(config=None)
        callback = MagicMock()

        count = push_notification(connection, [], "Hello", {}, callback)

        assert count == 0
        assert connection.submitted == []
        callback.assert_called_once_with(None)

    def test_invalid_token_reported_to_callback(self):
        connection = FakeConnection(config=None)
        callback = MagicMock()

        count = push_notification(connection, [TOKEN_1, "not-a-token", TOKEN_2], "Hello", {}, callback)

        assert count == 0
        assert connection.submitted == []
        callback.assert_called_once()
        assert isinstance(callback.call_args[0][0], ValueError)

    def test_invalid_token_raises_without_callback(self):
        connection = FakeConnection(config=None)

        with pytest.raises(ValueError):
            push_notification(connection, ["zz"], "Hello", {})

        assert connection.submitted == []

    def test_callback_optional(self):
        connection = FakeConnection(config=None)

        assert push_notification(connection, [TOKEN_1], "Hello", {}) == 1


class TestGlobalTransport:
    """Tests for the process-wide accessors."""

    def test_not_configured_raises(self):
        with patch.object(transport_module, "_apns_transport", None), \
             patch("app.core.config.settings") as mock_settings:
            mock_settings.apns_ready = False

            with pytest.raises(RuntimeError, match="APNS is not configured"):
                transport_module.get_apns_transport()

    def test_built_from_settings(self, test_key_file):
        with patch.object(transport_module, "_apns_transport", None), \
             patch("app.core.config.settings") as mock_settings:
            mock_settings.apns_ready = True
            mock_settings.APNS_KEY_FILE = test_key_file
            mock_settings.APNS_KEY_ID = "KEYID12345"
            mock_settings.APNS_TEAM_ID = "TEAMID1234"
            mock_settings.APNS_BUNDLE_ID = "com.example.gateway"
            mock_settings.APNS_USE_SANDBOX = True
            mock_settings.APNS_FEEDBACK_INTERVAL_SECONDS = 120

            transport = transport_module.get_apns_transport()

            assert transport is transport_module.get_apns_transport()
            assert transport.config.bundle_id == "com.example.gateway"
            assert transport.feedback_interval == 120

    @pytest.mark.asyncio
    async def test_shutdown_clears_global(self):
        fake = MagicMock()

        async def close():
            fake.closed = True

        fake.close = close
        with patch.object(transport_module, "_apns_transport", fake):
            await transport_module.shutdown_apns_transport()
            assert transport_module._apns_transport is None
        assert fake.closed is True
