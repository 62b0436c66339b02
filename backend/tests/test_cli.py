# Overview: Pytest coverage for the Flask CLI command groups.

from bookkeeper.models import Business


def test_businesses_create_and_list(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=['businesses', 'create', '--name', 'Kiosk', '--currency', 'ghs'])
    assert result.exit_code == 0
    assert 'Created business: Kiosk' in result.output
    assert db_session.query(Business).filter_by(name='Kiosk').one().preferred_currency == 'GHS'

    result = runner.invoke(args=['businesses', 'list'])
    assert 'Kiosk' in result.output


def test_reconcile_issues_empty(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=['reconcile', 'issues'])
    assert result.exit_code == 0
    assert 'No reconciliation issues.' in result.output


def test_resolve_unknown_issue_fails(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=['reconcile', 'resolve', '99', '--note', 'n/a'])
    assert result.exit_code != 0
    assert 'not found' in result.output
