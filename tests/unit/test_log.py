"""Tests for logging setup."""

import json

import structlog

from swapquote.log import configure_logging


class TestConfigureLogging:
    def teardown_method(self):
        structlog.reset_defaults()

    def test_json_output(self, capsys):
        configure_logging("INFO", json=True)

        structlog.get_logger().info("quote_created", network="ETHEREUM")

        event = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert event["event"] == "quote_created"
        assert event["network"] == "ETHEREUM"
        assert event["level"] == "info"

    def test_level_filters(self, capsys):
        configure_logging("WARNING", json=True)

        structlog.get_logger().info("quote_stage")

        assert capsys.readouterr().out == ""
