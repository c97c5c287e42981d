"""
CLI command tests via Flask's CLI runner.
"""

from cart_registry.models import Registration
from cart_registry.services.admin_auth_service import verify_token


def test_issue_token(app, settings):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["admin", "issue-token", "--ttl", "60"])

    assert result.exit_code == 0
    assert verify_token(settings.admin_secret, result.output.strip())


def test_purge_is_dry_run_by_default(app, db_session, new_sale):
    new_sale("SN1", order_ref="TEST-1")
    runner = app.test_cli_runner()

    result = runner.invoke(args=["registrations", "purge", "--order-prefix", "TEST-"])

    assert result.exit_code == 0
    assert "Matched: 1" in result.output
    assert "DRY RUN" in result.output
    assert db_session.query(Registration).count() == 1


def test_purge_execute(app, db_session, new_sale):
    new_sale("SN1", order_ref="TEST-1")
    runner = app.test_cli_runner()

    result = runner.invoke(args=["registrations", "purge", "--order-prefix", "TEST-", "--execute"])

    assert result.exit_code == 0
    assert "Deleted: 1 of 1" in result.output
    assert db_session.query(Registration).count() == 0


def test_purge_bad_date(app, db_session):
    result = app.test_cli_runner().invoke(args=["registrations", "purge", "--before", "soon"])
    assert result.exit_code != 0


def test_show_cart(app, db_session, new_sale):
    new_sale("SN1", order_ref="1001")
    result = app.test_cli_runner().invoke(args=["carts", "show", "SN1"])

    assert result.exit_code == 0
    assert "1001 (ACTIVE)" in result.output
    assert "Owners (newest first):" in result.output
    assert "1001 NEW  ACTIVE" in result.output
