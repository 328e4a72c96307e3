"""
Unit tests for the structured field logger.
"""

import logging

from kubearango.utils.log import with_fields


class TestWithFields:
    """Test suite for field rendering."""

    def test_fields_follow_the_message(self, caplog):
        log = with_fields(logging.getLogger("kubearango.test"), **{"action-id": "x1", "group": "agent"})
        with caplog.at_level(logging.INFO, logger="kubearango.test"):
            log.info("Member added")

        record = caplog.records[0]
        assert record.getMessage() == "Member added [action-id=x1 group=agent]"
        assert record.fields == {"action-id": "x1", "group": "agent"}

    def test_nested_fields_extend_the_parent(self, caplog):
        log = with_fields(logging.getLogger("kubearango.test"), deployment="demo").with_fields(phase="Start")
        with caplog.at_level(logging.INFO, logger="kubearango.test"):
            log.info("tick")
        assert caplog.records[0].getMessage() == "tick [deployment=demo phase=Start]"

    def test_no_fields(self, caplog):
        log = with_fields(logging.getLogger("kubearango.test"))
        with caplog.at_level(logging.INFO, logger="kubearango.test"):
            log.info("plain")
        assert caplog.records[0].getMessage() == "plain"
