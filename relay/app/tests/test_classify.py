"""
Unit Tests for Request Classification and CORS Headers
======================================================

Tests for relay/app/proxy/classify.py and relay/app/proxy/cors.py
"""

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from relay.app.config import OriginMode, Settings
from relay.app.models import CompletionRequest, SessionKind, SessionRequest, UpstreamRoute
from relay.app.proxy.classify import classify, client_ip, enrich_metadata, utc_timestamp
from relay.app.proxy.cors import cors_headers
from relay.app.proxy.errors import InvalidRequestError

AGENT_ID = "agent_12345678901234567890"


@pytest.fixture
def settings():
    return Settings(_env_file=None, ALLOWED_ORIGINS="https://a.example.com, https://b.example.com/")


def fake_request(headers=None, host="198.51.100.7"):
    client = SimpleNamespace(host=host) if host else None
    return SimpleNamespace(headers=headers or {}, client=client)


# ============================================================================
# classify()
# ============================================================================

def test_completion_request(settings):
    classified = classify({"chat_id": "chat_1", "message": "hi"}, settings)

    assert isinstance(classified, CompletionRequest)
    assert classified.route is UpstreamRoute.CREATE_CHAT_COMPLETION
    assert classified.upstream_payload() == {"chat_id": "chat_1", "message": "hi"}


@pytest.mark.parametrize(
    "body",
    [{"chat_id": "", "message": "hi"}, {"chat_id": "chat_1", "message": ""}, {"message": "hi"}],
)
def test_incomplete_completion_falls_through_to_agent_check(settings, body):
    with pytest.raises(InvalidRequestError, match="agent_id is required"):
        classify(body, settings)


@pytest.mark.parametrize("body", [None, [], "agent_12345678901234567890", 42])
def test_non_mapping_body_reads_as_empty(settings, body):
    with pytest.raises(InvalidRequestError) as exc_info:
        classify(body, settings)

    assert exc_info.value.status_code == 400
    assert exc_info.value.to_body() == {"error": "agent_id is required"}


def test_voice_is_default_session(settings):
    classified = classify({"agent_id": AGENT_ID}, settings)

    assert isinstance(classified, SessionRequest)
    assert classified.kind is SessionKind.VOICE
    assert classified.route is UpstreamRoute.CREATE_WEB_CALL
    assert classified.service_name == "Voice"
    assert classified.metadata == {}


def test_text_chat_marker_selects_chat(settings):
    classified = classify(
        {"agent_id": AGENT_ID, "metadata": {"interaction_type": "text_chat"}},
        settings,
    )

    assert classified.kind is SessionKind.CHAT
    assert classified.route is UpstreamRoute.CREATE_CHAT
    assert classified.service_name == "Chat"


def test_other_interaction_type_is_voice(settings):
    classified = classify(
        {"agent_id": AGENT_ID, "metadata": {"interaction_type": "voice"}},
        settings,
    )

    assert classified.kind is SessionKind.VOICE


def test_non_mapping_metadata_is_ignored(settings):
    classified = classify({"agent_id": AGENT_ID, "metadata": "text_chat"}, settings)

    assert classified.kind is SessionKind.VOICE
    assert classified.metadata == {}


def test_agent_id_shape_follows_settings():
    settings = Settings(_env_file=None, AGENT_ID_PREFIX="bot-", AGENT_ID_MIN_LENGTH=8)

    assert classify({"agent_id": "bot-1234"}, settings).agent_id == "bot-1234"
    with pytest.raises(InvalidRequestError, match="Invalid agent_id format"):
        classify({"agent_id": "bot-123"}, settings)
    with pytest.raises(InvalidRequestError, match="Invalid agent_id format"):
        classify({"agent_id": AGENT_ID}, settings)


def test_agent_id_minimum_length_is_inclusive(settings):
    exactly_twenty = "agent_" + "1" * 14

    assert classify({"agent_id": exactly_twenty}, settings).agent_id == exactly_twenty
    with pytest.raises(InvalidRequestError):
        classify({"agent_id": exactly_twenty[:-1]}, settings)


def test_public_fields_only_keep_class_fields(settings):
    voice = classify({"agent_id": AGENT_ID}, settings)
    upstream = {"call_id": "c", "access_token": "t", "agent_id": AGENT_ID, "secret": "x"}

    assert voice.public_fields(upstream) == {"call_id": "c", "access_token": "t", "agent_id": AGENT_ID}


# ============================================================================
# client_ip() / enrich_metadata()
# ============================================================================

def test_client_ip_prefers_first_forwarded_hop():
    request = fake_request({"X-Forwarded-For": " 203.0.113.9 , 10.0.0.2"})

    assert client_ip(request) == "203.0.113.9"


def test_client_ip_falls_back_to_peer():
    assert client_ip(fake_request()) == "198.51.100.7"
    assert client_ip(fake_request(host=None)) == "unknown"


def test_enrich_metadata_server_keys_win(settings):
    now = datetime(2024, 5, 1, 12, 30, 45, 123456, tzinfo=timezone.utc)

    enriched = enrich_metadata(
        {"page": "home", "client_ip": "1.1.1.1", "source": "me"},
        "203.0.113.9",
        settings,
        now=now,
    )

    assert enriched == {
        "page": "home",
        "client_ip": "203.0.113.9",
        "source": "wellabe-demo",
        "proxy_timestamp": "2024-05-01T12:30:45.123Z",
    }


def test_utc_timestamp_format():
    assert utc_timestamp(datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)) == "2024-01-02T03:04:05.000Z"


# ============================================================================
# cors_headers()
# ============================================================================

def test_allow_list_echoes_listed_origin(settings):
    headers = cors_headers("https://b.example.com", settings)

    assert headers["Access-Control-Allow-Origin"] == "https://b.example.com"
    assert headers["Vary"] == "Origin"


@pytest.mark.parametrize("origin", [None, "", "https://c.example.com", "https://a.example.com.evil.io"])
def test_allow_list_omits_unlisted_origin(settings, origin):
    headers = cors_headers(origin, settings)

    assert "Access-Control-Allow-Origin" not in headers
    assert headers["Access-Control-Allow-Methods"] == "POST, OPTIONS"
    assert headers["Vary"] == "Origin"


def test_open_mode_always_wildcard():
    settings = Settings(_env_file=None, ORIGIN_POLICY="open", ALLOWED_ORIGINS="")

    assert cors_headers(None, settings)["Access-Control-Allow-Origin"] == "*"
    assert cors_headers("https://c.example.com", settings)["Access-Control-Allow-Origin"] == "*"
    assert settings.ORIGIN_POLICY is OriginMode.OPEN
