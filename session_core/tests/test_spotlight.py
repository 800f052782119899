import json

from session_core.spotlight import SpotlightData, parse_spotlight_message


class TestParseSpotlightMessage:
    def test_bytes_payload(self):
        payload = json.dumps({"participantId": "bob", "timestamp": 1712345678901}).encode()
        result = parse_spotlight_message(payload)
        assert isinstance(result, SpotlightData)
        assert result.participant_id == "bob"
        assert result.timestamp == 1712345678901

    def test_str_payload(self):
        result = parse_spotlight_message('{"participantId": "carol", "timestamp": 5}')
        assert result.participant_id == "carol"

    def test_extra_fields_ignored(self):
        result = parse_spotlight_message(
            '{"participantId": "carol", "timestamp": 5, "by": "host"}'
        )
        assert result.participant_id == "carol"

    def test_missing_participant(self):
        assert parse_spotlight_message('{"timestamp": 5}') is None

    def test_empty_participant(self):
        assert parse_spotlight_message('{"participantId": "", "timestamp": 5}') is None

    def test_zero_timestamp(self):
        assert parse_spotlight_message('{"participantId": "bob", "timestamp": 0}') is None

    def test_not_json(self):
        assert parse_spotlight_message(b"hello there") is None

    def test_not_utf8(self):
        assert parse_spotlight_message(b"\xff\xfe\xfd") is None

    def test_json_array(self):
        assert parse_spotlight_message("[1, 2, 3]") is None
