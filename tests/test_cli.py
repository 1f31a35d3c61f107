"""Tests for the command-line entry point."""

import json

import pytest

from booking_orchestrator.cli import _dispatch, build_parser, main
from tests.conftest import TZ, days_ahead, local


class TestParser:
    def test_slots_arguments(self):
        args = build_parser().parse_args(
            ["--location", "loc_1", "slots", "--service", "Facial", "--time-preference", "morning"]
        )
        assert args.command == "slots"
        assert args.service == "Facial"
        assert args.time_preference == "morning"

    def test_location_is_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["schedule"])

    def test_package_requires_name(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--location", "loc_1", "package"])


class TestDispatch:
    @pytest.mark.asyncio
    async def test_slots_command(self, fake_api, orchestrator):
        fake_api.add_slots("cal_facial", local(days_ahead(1), 10))
        args = build_parser().parse_args(["--location", "loc_1", "slots", "--service", "Facial"])
        result = await _dispatch(orchestrator, args)
        assert result["success"] is True
        assert result["slots"][0]["calendar_id"] == "cal_facial"

    @pytest.mark.asyncio
    async def test_package_command(self, orchestrator):
        args = build_parser().parse_args(
            ["--location", "loc_1", "package", "--package", "Deluxe Spa Day"]
        )
        result = await _dispatch(orchestrator, args)
        assert result["available"] is False


class TestMain:
    def test_unknown_location_exits_nonzero(self, tmp_path, capsys):
        path = tmp_path / "directory.json"
        path.write_text(json.dumps({"locations": [{"location_id": "loc_1", "timezone": TZ}]}))
        code = main(["--location", "loc_404", "--directory-file", str(path), "schedule"])
        out = capsys.readouterr().out
        assert code == 1
        assert "not able to book that online" in out
        assert '"success": false' in out
