"""Tests for HMAC-SHA256 request signing."""

from __future__ import annotations

import base64
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlsplit

import pytest

from neotool_xunfei.errors import FormatError, UrlError
from neotool_xunfei.signing import build_signature, format_rfc2822, sign

TARGET_URL = "wss://spark-api.xf-yun.com/v3.1/chat"
API_SECRET = "MjlmNzkzNmZkMDQ2OTc0ZDdmNGE2ZTZi"
API_KEY = "addd2272b6d8b7c8abdd79531420ca3b"
EXPECTED_URL = (
    "wss://spark-api.xf-yun.com/v3.1/chat?authorization="
    "YXBpX2tleT0iYWRkZDIyNzJiNmQ4YjdjOGFiZGQ3OTUzMTQyMGNhM2IiLCBhbGdvcml0aG09ImhtYWMtc2hhMjU2Ii"
    "wgaGVhZGVycz0iaG9zdCBkYXRlIHJlcXVlc3QtbGluZSIsIHNpZ25hdHVyZT0iSm1LWFBZYmFVRjg2R0pOY0ZEaEEw"
    "aGY1WmJ5TGdib0cxTVNKYml3ZzNBVT0i"
    "&date=Fri%2C+05+May+2023+02%3A43%3A39+%2B0000&host=spark-api.xf-yun.com"
)


class TestSign:
    """Signed URL derivation."""

    def test_matches_known_vector(self, fixed_time: datetime) -> None:
        signed = sign(TARGET_URL, API_SECRET, API_KEY, fixed_time)

        assert signed.url == EXPECTED_URL
        assert str(signed) == EXPECTED_URL
        assert signed.host == "spark-api.xf-yun.com"
        assert signed.date == "Fri, 05 May 2023 02:43:39 +0000"

    def test_matches_recorded_example_signature(self, fixed_time: datetime) -> None:
        signed = sign("wss://example.com/v3.1/chat", "SECRET", "KEY", fixed_time)

        assert build_signature("example.com", signed.date, "/v3.1/chat", "SECRET") == (
            "SdrD2a/F+n7915cRW7cTjFE4YjJ2QqwSQ7oos3UNNCw="
        )
        assert signed.authorization == (
            "YXBpX2tleT0iS0VZIiwgYWxnb3JpdGhtPSJobWFjLXNoYTI1NiIsIGhlYWRlcnM9Imhvc3QgZGF0ZSByZXF1ZXN0LWxpbmUi"
            "LCBzaWduYXR1cmU9IlNkckQyYS9GK243OTE1Y1JXN2NUakZFNFlqSjJRcXdTUTdvb3MzVU5OQ3c9Ig=="
        )
        assert signed.url.startswith("wss://example.com/v3.1/chat?authorization=YXBp")
        assert "Ig%3D%3D&date=Fri%2C+05+May+2023" in signed.url
        assert signed.url.endswith("&host=example.com")

    def test_is_deterministic(self, fixed_time: datetime) -> None:
        first = sign(TARGET_URL, API_SECRET, API_KEY, fixed_time)
        second = sign(TARGET_URL, API_SECRET, API_KEY, fixed_time)

        assert first == second

    @pytest.mark.parametrize(
        "overrides",
        [
            {"target_url": "wss://spark-api.xf-yun.com/v2.1/chat"},
            {"target_url": "wss://tts-api.xfyun.cn/v3.1/chat"},
            {"api_secret": API_SECRET + "x"},
            {"api_key": API_KEY[:-1] + "c"},
            {"timestamp": datetime.fromtimestamp(1683254620, tz=timezone.utc)},
        ],
    )
    def test_single_input_change_changes_authorization(
        self, fixed_time: datetime, overrides: dict
    ) -> None:
        arguments = {
            "target_url": TARGET_URL,
            "api_secret": API_SECRET,
            "api_key": API_KEY,
            "timestamp": fixed_time,
        }
        baseline = sign(**arguments)
        changed = sign(**{**arguments, **overrides})

        assert changed.authorization != baseline.authorization

    def test_appends_to_existing_query(self, fixed_time: datetime) -> None:
        signed = sign(f"{TARGET_URL}?lang=en", API_SECRET, API_KEY, fixed_time)
        query = parse_qs(urlsplit(signed.url).query)

        assert signed.url.startswith(f"{TARGET_URL}?lang=en&authorization=")
        assert query["lang"] == ["en"]
        assert query["host"] == ["spark-api.xf-yun.com"]

    def test_defaults_empty_path_to_root(self, fixed_time: datetime) -> None:
        signed = sign("wss://tts-api.xfyun.cn", API_SECRET, API_KEY, fixed_time)
        expected_signature = build_signature("tts-api.xfyun.cn", signed.date, "/", API_SECRET)

        assert signed.url.startswith("wss://tts-api.xfyun.cn/?authorization=")
        assert expected_signature in _decoded_credential(signed.authorization)

    def test_non_utc_offset_is_rendered_as_given(self) -> None:
        timestamp = datetime(2023, 5, 5, 10, 43, 39, tzinfo=timezone(timedelta(hours=8)))
        signed = sign(TARGET_URL, API_SECRET, API_KEY, timestamp)

        assert signed.date == "Fri, 05 May 2023 10:43:39 +0800"


class TestSignFailures:
    """Inputs that cannot be signed."""

    def test_naive_timestamp_raises_format_error(self) -> None:
        with pytest.raises(FormatError):
            sign(TARGET_URL, API_SECRET, API_KEY, datetime(2023, 5, 5, 2, 43, 39))

    def test_out_of_range_year_raises_format_error(self) -> None:
        with pytest.raises(FormatError):
            format_rfc2822(datetime(1, 1, 1, tzinfo=timezone.utc))

    @pytest.mark.parametrize(
        "target_url",
        [
            "not a url",
            "/v3.1/chat",
            "wss:///v3.1/chat",
            "wss://[::1/v3.1/chat",
            "wss://spark-api.xf-yun.com:notaport/v3.1/chat",
        ],
    )
    def test_bad_target_raises_url_error(self, fixed_time: datetime, target_url: str) -> None:
        with pytest.raises(UrlError) as excinfo:
            sign(target_url, API_SECRET, API_KEY, fixed_time)

        assert excinfo.value.kind == "url"


def _decoded_credential(authorization: str) -> str:
    return base64.b64decode(authorization).decode("utf-8")
