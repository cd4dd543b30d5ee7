"""
Tests for the command envelope decoder and browse request models.
"""

import json
from datetime import datetime, timezone

import pytest
from utils.factories import make_command, make_frame

from eventhub.exceptions import InvalidCommandError, MissingTargetError
from eventhub.schemas.browse_log import BrowseCount, BrowseQuery, BrowseReport, parse_browse_request
from eventhub.schemas.command import Command, CommandResult, Ops, decode_frame


class TestDecodeFrame:
    """Tests for decoding transport frames."""

    def test_decodes_full_command(self):
        frame = make_frame(
            {
                "ops": "C",
                "code": 700,
                "user": "pk-1",
                "sig": "abc",
                "created_at": "2026-10-18T09:00:00Z",
                "data": {"targetId": "post-1"},
                "tags": [["t", "news"]],
            }
        )

        command = decode_frame(frame)

        assert command.ops is Ops.CREATE
        assert command.code == 700
        assert command.user == "pk-1"
        assert command.sig == "abc"
        assert command.created_at == datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)
        assert command.data == {"targetId": "post-1"}
        assert command.tags == [["t", "news"]]

    def test_optional_fields_default(self):
        command = decode_frame(make_frame({"ops": "R", "code": 203, "user": "pk-1", "data": None}))

        assert command.data == {}
        assert command.tags == []
        assert command.sig is None
        assert command.created_at is None

    def test_numeric_created_at_is_unix_seconds(self):
        command = decode_frame(make_frame({"ops": "R", "code": 203, "user": "pk-1", "created_at": 1792314000}))

        assert command.created_at == datetime.fromtimestamp(1792314000, tz=timezone.utc)

    def test_bytes_frame(self):
        command = decode_frame(make_frame({"ops": "D", "code": 102, "user": "pk-1"}).encode())

        assert command.ops is Ops.DELETE

    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            json.dumps({"ops": "C", "code": 700, "user": "pk"}),
            json.dumps(["EVENT", "sub"]),
            json.dumps(["EVENT", "sub", "string body"]),
        ],
    )
    def test_malformed_frames(self, raw):
        with pytest.raises(InvalidCommandError) as exc_info:
            decode_frame(raw)

        assert exc_info.value.status_code == 400

    @pytest.mark.parametrize(
        "body",
        [
            {"code": 700, "user": "pk"},
            {"ops": "C", "user": "pk"},
            {"ops": "C", "code": 700},
            {"ops": "X", "code": 700, "user": "pk"},
            {"ops": "C", "code": "700", "user": "pk"},
            {"ops": "C", "code": 700, "user": ""},
            {"ops": "C", "code": 700, "user": "pk", "created_at": "yesterday-ish"},
        ],
    )
    def test_missing_or_invalid_required_fields(self, body):
        with pytest.raises(InvalidCommandError) as exc_info:
            decode_frame(make_frame(body))

        assert exc_info.value.details["errors"]

    def test_command_is_immutable(self):
        command = make_command("C", 700)

        with pytest.raises(Exception):
            command.code = 703


class TestCommandResult:
    def test_from_error(self):
        result = CommandResult.from_error(MissingTargetError())

        assert result.code == 400
        assert result.message == "targetId must not be empty"
        assert result.data is None
        assert not result.ok

    def test_ok(self):
        assert CommandResult(data={"a": 1}).ok


class TestBrowseRequests:
    """Tests for building typed ledger requests from commands."""

    def test_report_from_command(self):
        created_at = datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)
        command = make_command(
            "C",
            700,
            user="pk-1",
            created_at=created_at,
            data={"anonymousId": "dev-1", "targetId": 42, "targetType": "article", "ipAddress": "10.0.0.1"},
        )

        request = parse_browse_request(command, "anonymous")

        assert isinstance(request, BrowseReport)
        assert request.identity == "pk-1"
        assert request.anonymous_id == "dev-1"
        assert request.target_id == "42"
        assert request.target_type == "article"
        assert request.ip_address == "10.0.0.1"
        assert request.created_at == created_at

    def test_anonymous_identity_maps_to_none(self):
        command = make_command("C", 700, user="anonymous", data={"anonymousId": "dev-1", "targetId": "p1"})

        request = parse_browse_request(command, "anonymous")

        assert request.identity is None

    def test_payload_cannot_override_identity_or_code(self):
        command = make_command("R", 703, user="pk-1", data={"identity": "admin-pubkey", "code": 700})

        request = parse_browse_request(command, "anonymous")

        assert isinstance(request, BrowseQuery)
        assert request.identity == "pk-1"
        assert request.code == 703

    def test_query_fields(self):
        command = make_command(
            "R",
            703,
            data={
                "userFilter": "U2",
                "startTime": "2026-10-01T00:00:00Z",
                "endTime": "2026-10-18T00:00:00Z",
                "pageNum": 2,
                "pageSize": 5,
            },
        )

        request = parse_browse_request(command)

        assert request.user_filter == "U2"
        assert request.start_time.day == 1
        assert request.end_time.day == 18
        assert request.page_num == 2
        assert request.page_size == 5

    def test_count_single_and_batch(self):
        single = parse_browse_request(make_command("R", 704, data={"targetId": "t1"}))
        batch = parse_browse_request(make_command("R", 704, data={"targetId": ["t1", 2]}))

        assert isinstance(single, BrowseCount)
        assert single.target_id == "t1"
        assert batch.target_id == ["t1", "2"]

    def test_invalid_payload_is_invalid_command(self):
        command = make_command("R", 703, data={"pageSize": "lots"})

        with pytest.raises(InvalidCommandError) as exc_info:
            parse_browse_request(command)

        assert exc_info.value.details["errors"][0]["field"] == "pageSize"

    def test_oversized_page_num_is_invalid_command(self):
        command = make_command("R", 703, data={"pageNum": 10**18})

        with pytest.raises(InvalidCommandError) as exc_info:
            parse_browse_request(command)

        assert exc_info.value.status_code == 400
        assert exc_info.value.details["errors"][0]["field"] == "pageNum"

    def test_unknown_browse_operation(self):
        with pytest.raises(InvalidCommandError):
            parse_browse_request(make_command("D", 700))

    def test_command_model_validates_directly(self):
        command = Command.model_validate({"ops": "U", "code": 101, "user": "pk"})

        assert command.ops is Ops.UPDATE
