"""
Tests for channel map validation
"""

import json

from chat_deleter.validation import parse_channel_map, validate_channel_map


def valid_export() -> dict:
    return {
        '100': {
            'messageIds': ['1', '2'],
            'displayName': 'general',
            'serverName': 'Test Server',
            'channelType': 'GUILD_TEXT',
        },
        '200': {
            'messageIds': ['3'],
            'displayName': 'alice',
            'channelType': 'DM',
        },
    }


class TestValidateChannelMap:
    """Tests for validate_channel_map"""

    def test_valid_map(self):
        result = validate_channel_map(valid_export())

        assert result.ok is True
        assert result.error is None
        assert list(result.channels.keys()) == ['100', '200']
        assert result.channels['100'].server_name == 'Test Server'
        assert result.channels['200'].server_name is None
        assert result.channels['200'].message_ids == ['3']

    def test_null_server_name_allowed(self):
        data = valid_export()
        data['200']['serverName'] = None

        assert validate_channel_map(data).ok is True

    def test_empty_map_is_valid_but_empty(self):
        result = validate_channel_map({})

        assert result.ok is True
        assert result.is_empty is True

    def test_array_root_rejected(self):
        result = validate_channel_map([valid_export()])

        assert result.ok is False
        assert "ChannelMap structure" in result.error

    def test_non_string_message_id_rejected(self):
        data = valid_export()
        data['100']['messageIds'] = ['1', 2]

        assert validate_channel_map(data).ok is False

    def test_missing_channel_type_rejected(self):
        data = valid_export()
        del data['100']['channelType']

        assert validate_channel_map(data).ok is False

    def test_channel_not_an_object_rejected(self):
        assert validate_channel_map({'100': 'general'}).ok is False


class TestParseChannelMap:
    """Tests for parse_channel_map"""

    def test_parses_json_text(self):
        result = parse_channel_map(json.dumps(valid_export()))

        assert result.ok is True
        assert len(result.channels) == 2

    def test_blank_text(self):
        result = parse_channel_map("   ")

        assert result.ok is False
        assert result.error == "No JSON data provided."

    def test_invalid_json(self):
        result = parse_channel_map("{not json")

        assert result.ok is False
        assert result.error.startswith("Invalid JSON data")

    def test_round_trips_serialized_channels(self):
        """A payload written back by a completed run is accepted again"""
        first = parse_channel_map(json.dumps(valid_export()))
        payload = json.dumps({cid: channel.to_dict() for cid, channel in first.channels.items()})

        assert parse_channel_map(payload).channels == first.channels
