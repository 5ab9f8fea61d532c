import pytest

from glinstaller.errors_catalog import actionable_error


def test_actionable_error_formats_message_with_suggested_action():
    message = actionable_error(
        "dns_mismatch", hostname="gl.school.org", resolved="1.2.3.4", ip="5.6.7.8"
    )

    assert message.startswith(
        "DNS lookup for gl.school.org resolved to 1.2.3.4 but didn't match this system 5.6.7.8."
    )
    assert "Suggested action:" in message


def test_actionable_error_rejects_unknown_code():
    with pytest.raises(KeyError, match="Unknown error catalog key"):
        actionable_error("no_such_code")
