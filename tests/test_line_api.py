import pytest

from src.infra.line_api import LineApiAdapter, LineApiError


class _FakeResponse:
    def __init__(self, status_code=200, json_data=None, text=""):
        self.status_code = status_code
        self._json = json_data or {}
        self.text = text

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        return self._json


class _FakeSession:
    def __init__(self, responses):
        self._responses = responses
        self.headers = {}
        self.gets = []
        self.posts = []

    def get(self, url, timeout=5):
        self.gets.append(url)
        return self._responses.pop(0)

    def post(self, url, json=None, timeout=5):
        self.posts.append((url, json))
        return self._responses.pop(0)


def _adapter_with_responses(responses):
    fake_session = _FakeSession(responses)
    adapter = LineApiAdapter("dummy")
    adapter._session = fake_session  # type: ignore[attr-defined]
    return adapter, fake_session


def test_reply_messages_truncates_text_and_count():
    adapter, session = _adapter_with_responses([_FakeResponse()])
    messages = [{"type": "text", "text": "x" * 6000}] + [{"type": "text", "text": str(i)} for i in range(6)]

    adapter.reply_messages("token", messages)

    url, payload = session.posts[0]
    assert url.endswith("/v2/bot/message/reply")
    assert payload["replyToken"] == "token"
    assert len(payload["messages"]) == 5
    assert len(payload["messages"][0]["text"]) == 5000


def test_reply_failure_raises():
    adapter, _ = _adapter_with_responses([_FakeResponse(status_code=400, text="bad")])

    with pytest.raises(LineApiError):
        adapter.reply_messages("token", [{"type": "text", "text": "hello"}])


def test_get_display_name_uses_group_member_endpoint():
    adapter, session = _adapter_with_responses([_FakeResponse(json_data={"displayName": "Anna"})])

    name = adapter.get_display_name("group", "G1", "U1")

    assert name == "Anna"
    assert session.gets[0].endswith("/v2/bot/group/G1/member/U1")


def test_get_display_name_404_returns_none():
    adapter, session = _adapter_with_responses([_FakeResponse(status_code=404)])

    assert adapter.get_display_name("user", None, "U1") is None
    assert session.gets[0].endswith("/v2/bot/profile/U1")
