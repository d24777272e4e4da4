"""
Test Fixtures and Constants
Shared test data to avoid hardcoded values across test files
"""

# Test user credentials
# These are NOT real credentials - only for test databases
TEST_PASSWORD = "TestPassword123!"  # Test-only password, never used in production
BUYER_EMAIL = "buyer@realty-test.com"
OTHER_BUYER_EMAIL = "buyer-2@realty-test.com"
SELLER_EMAIL = "seller@realty-test.com"
AGENT_EMAIL = "agent@realty-test.com"

# Webhook API key used by the test settings
TEST_PROPERTY_EVENTS_API_KEY = "test-property-events-key"

# Marketplace data
TEST_PROPERTY_ID = "prop-12-elm-street"
TEST_PROPERTY_ID_2 = "prop-7-harbour-view"
TEST_MESSAGE_TEXT = "Hi, is the flat on Elm Street still available?"
TEST_MESSAGE_TEXT_2 = "Yes, viewings are possible on Saturday."

# Expo push token accepted by the token format check
TEST_PUSH_TOKEN = "ExponentPushToken[test-token-123]"

# Base URLs (for integration tests against a running server)
BASE_URL = "http://localhost:8000"
WS_URL = "ws://localhost:8000"


class FakeWebSocket:
    """Stand-in for a FastAPI WebSocket: scripted inbound frames, recorded outbound frames"""

    def __init__(self, inbound=None, fail: bool = False):
        self.inbound = list(inbound or [])
        self.sent: list[dict] = []
        self.fail = fail
        self.accepted = False
        self.close_code: int | None = None
        self.close_reason: str | None = None

    async def accept(self):
        self.accepted = True

    async def close(self, code: int = 1000, reason: str | None = None):
        self.close_code = code
        self.close_reason = reason

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("socket is closed")
        self.sent.append(data)

    async def receive_json(self):
        from starlette.websockets import WebSocketDisconnect

        if not self.inbound:
            raise WebSocketDisconnect(code=1000)
        return self.inbound.pop(0)

    def events(self, name: str | None = None) -> list[dict]:
        return [sent for sent in self.sent if name is None or sent["event"] == name]
