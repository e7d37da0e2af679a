# Overview: Pytest coverage for the flask CLI command groups.

from tradebook.extensions import db
from tradebook.models import Item
from tradebook.services.adjustment_service import adjust


class TestCli:

    def test_init_db_is_repeatable(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["system", "init-db"])
        assert result.exit_code == 0
        assert "Database ready" in result.output

    def test_items_list(self, app, make_item):
        make_item(name="Basmati Rice", sku="RICE-1")
        make_item(name="Retired Tea", sku="TEA-1", is_active=False)
        runner = app.test_cli_runner()

        result = runner.invoke(args=["items", "list"])
        assert result.exit_code == 0
        assert "RICE-1" in result.output
        assert "TEA-1" not in result.output

        result = runner.invoke(args=["items", "list", "--all"])
        assert "TEA-1" in result.output

    def test_low_stock(self, app, make_item):
        make_item(sku="LOW-1", stock=2, reorder_level=5)
        result = app.test_cli_runner().invoke(args=["items", "low-stock"])
        assert result.exit_code == 0
        assert "LOW-1" in result.output

    def test_reconcile_passes(self, app, make_item):
        item = make_item(stock=5)
        adjust(item_id=item.id, adjustment_type="increase", quantity=2, reason="Found", actor_id=1)

        result = app.test_cli_runner().invoke(args=["ledger", "reconcile"])
        assert result.exit_code == 0
        assert "PASS Ledger reconciles." in result.output

    def test_reconcile_reports_drift(self, app, make_item):
        item = make_item(stock=5)
        db.session.query(Item).filter_by(id=item.id).update({"current_stock": 3})
        db.session.commit()

        result = app.test_cli_runner().invoke(args=["ledger", "reconcile", "--item-id", str(item.id)])
        assert result.exit_code == 1
        assert f"FAIL item {item.id}" in result.output
