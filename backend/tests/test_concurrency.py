"""
Concurrent orders against a file-backed SQLite database.

Each worker runs in its own app context (own session/connection). Stock for
exactly five orders exists; twelve workers race for it.
"""
import os
import tempfile
import threading
import unittest
from datetime import timedelta
from decimal import Decimal

from kitchen import create_app
from kitchen.errors import InsufficientStockError, InvalidStateError
from kitchen.extensions import db
from kitchen.models import Customer, InventoryItem, Order
from kitchen.services import (
    fixed_costs_service,
    inventory_service,
    order_service,
    pricing_service,
    products_service,
)
from kitchen.time_utils import to_utc_z, utcnow


class ConcurrentOrderTests(unittest.TestCase):
    WORKERS = 12

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.tmpdir.name, "concurrency.db")
        self.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
            "SQLALCHEMY_ENGINE_OPTIONS": {"connect_args": {"timeout": 30, "check_same_thread": False}},
        })

        with self.app.app_context():
            db.drop_all()
            db.create_all()

            raw = inventory_service.create_input({"name": "Chocolate"})
            item = inventory_service.create_inventory_item({
                "input_id": raw.id,
                "quantity": 5,
                "unit": "kg",
                "cost_per_unit": "20",
            })
            self.item_id = item.id

            product = products_service.create_product({
                "name": "Brownie tray",
                "ingredients": [{"inventory_item_id": item.id, "quantity_per_yield": 1}],
            })
            fixed_costs_service.save_fixed_costs({
                "rent": 0, "taxes": 0, "utilities": 0, "marketing": 0, "accounting": 0,
                "expected_monthly_sales": 1,
            })
            self.pricing_id = pricing_service.create_pricing({
                "product_id": product.id,
                "profit_margin_pct": 50,
            }).id

            customer = Customer(name="Bakery", email="bakery@example.com", phone="1", address="Here")
            db.session.add(customer)
            db.session.commit()
            self.customer_id = customer.id

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.session.remove()
            db.engine.dispose()
        self.tmpdir.cleanup()

    def test_concurrent_orders_never_overdraw_stock(self):
        due = to_utc_z(utcnow() + timedelta(days=1))
        placed = []
        rejected = []
        errors = []
        lock = threading.Lock()
        start = threading.Barrier(self.WORKERS)

        def worker():
            with self.app.app_context():
                try:
                    start.wait()
                    order = order_service.create_order(
                        customer_id=self.customer_id,
                        due_date=due,
                        items=[{"pricing_id": self.pricing_id, "quantity": 1}],
                    )
                    with lock:
                        placed.append(order.id)
                except InsufficientStockError:
                    with lock:
                        rejected.append(True)
                except Exception as exc:
                    with lock:
                        errors.append(exc)
                finally:
                    db.session.remove()

        threads = [threading.Thread(target=worker) for _ in range(self.WORKERS)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertFalse(errors, errors)
        self.assertEqual(len(placed), 5)
        self.assertEqual(len(rejected), self.WORKERS - 5)

        with self.app.app_context():
            stock = db.session.get(InventoryItem, self.item_id).quantity
            self.assertEqual(stock, Decimal("0"))
            self.assertEqual(db.session.query(Order).count(), 5)

    def test_concurrent_cancels_restore_stock_once(self):
        due = to_utc_z(utcnow() + timedelta(days=1))
        with self.app.app_context():
            order_id = order_service.create_order(
                customer_id=self.customer_id,
                due_date=due,
                items=[{"pricing_id": self.pricing_id, "quantity": 3}],
            ).id

        results = []
        lock = threading.Lock()
        start = threading.Barrier(6)

        def cancel():
            with self.app.app_context():
                try:
                    start.wait()
                    order_service.cancel_order(order_id)
                    outcome = "cancelled"
                except InvalidStateError:
                    outcome = "refused"
                except Exception as exc:
                    outcome = exc
                finally:
                    db.session.remove()
                with lock:
                    results.append(outcome)

        threads = [threading.Thread(target=cancel) for _ in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(results.count("cancelled"), 1, results)
        self.assertEqual(results.count("refused"), 5, results)

        with self.app.app_context():
            stock = db.session.get(InventoryItem, self.item_id).quantity
            self.assertEqual(stock, Decimal("5"))

    def test_cancel_restores_while_others_order(self):
        due = to_utc_z(utcnow() + timedelta(days=1))
        with self.app.app_context():
            first = order_service.create_order(
                customer_id=self.customer_id,
                due_date=due,
                items=[{"pricing_id": self.pricing_id, "quantity": 5}],
            )
            first_id = first.id

        results = []
        lock = threading.Lock()

        def cancel():
            with self.app.app_context():
                try:
                    order_service.cancel_order(first_id)
                    with lock:
                        results.append("cancelled")
                finally:
                    db.session.remove()

        def order():
            with self.app.app_context():
                try:
                    order_service.create_order(
                        customer_id=self.customer_id,
                        due_date=due,
                        items=[{"pricing_id": self.pricing_id, "quantity": 2}],
                    )
                    with lock:
                        results.append("ordered")
                except InsufficientStockError:
                    with lock:
                        results.append("rejected")
                finally:
                    db.session.remove()

        threads = [threading.Thread(target=cancel), threading.Thread(target=order)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertIn("cancelled", results)
        with self.app.app_context():
            stock = db.session.get(InventoryItem, self.item_id).quantity
            expected = Decimal("3") if "ordered" in results else Decimal("5")
            self.assertEqual(stock, expected)
            self.assertGreaterEqual(stock, 0)


if __name__ == "__main__":
    unittest.main()
