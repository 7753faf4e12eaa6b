# Overview: Threaded concurrency tests for stock safeguards on a file-backed SQLite database.

"""
Concurrent sales, voids and adjustments against one product.

Each worker runs in its own thread with its own app context (and therefore
its own session and connection), so the writes genuinely race for SQLite's
write lock.
"""
import os
import tempfile
import threading
import unittest

from tillpoint import create_app
from tillpoint.extensions import db
from tillpoint.models import Product, Sale, SaleItem, User
from tillpoint.errors import InsufficientStock, NegativeStockError
from tillpoint.services import sales_service, inventory_service


class ConcurrencyTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.tmpdir.name, "concurrency.db")
        self.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
        })

        with self.app.app_context():
            db.drop_all()
            db.create_all()

            user = User(username="concurrent_user", password_hash="dummy", role="cashier")
            db.session.add(user)
            db.session.commit()
            self.user_id = user.id

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.session.remove()
            db.engine.dispose()
        self.tmpdir.cleanup()

    def _create_product(self, quantity, name="Concurrent Product"):
        with self.app.app_context():
            product = Product(name=name, price_cents=1000, quantity=quantity)
            db.session.add(product)
            db.session.commit()
            return product.id

    def _quantity(self, product_id):
        with self.app.app_context():
            return db.session.get(Product, product_id).quantity

    def _run_concurrently(self, jobs):
        """Start every job behind one barrier; returns results in job order."""
        results = [None] * len(jobs)
        barrier = threading.Barrier(len(jobs))

        def worker(index, job):
            with self.app.app_context():
                try:
                    barrier.wait()
                    results[index] = job()
                except Exception as exc:
                    results[index] = exc
                finally:
                    db.session.remove()

        threads = [threading.Thread(target=worker, args=(i, job)) for i, job in enumerate(jobs)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        return results

    def _sale_job(self, product_id, quantity):
        def job():
            sale = sales_service.create_sale(
                cashier_id=self.user_id,
                items=[{"product_id": product_id, "quantity": quantity, "unit_price_cents": 1000}],
                payment_method="card",
            )
            return sale.id
        return job

    def test_two_sales_of_three_against_five(self):
        product_id = self._create_product(5)

        results = self._run_concurrently([
            self._sale_job(product_id, 3),
            self._sale_job(product_id, 3),
        ])

        succeeded = [r for r in results if isinstance(r, int)]
        failed = [r for r in results if isinstance(r, InsufficientStock)]
        self.assertEqual(len(succeeded), 1, results)
        self.assertEqual(len(failed), 1, results)
        self.assertEqual(self._quantity(product_id), 2)

        with self.app.app_context():
            self.assertEqual(db.session.query(Sale).count(), 1)
            self.assertEqual(db.session.query(SaleItem).count(), 1)

    def test_many_sales_never_oversell(self):
        stock = 10
        quantities = [1, 2, 3, 4, 2, 1, 3, 2]
        product_id = self._create_product(stock)

        results = self._run_concurrently([self._sale_job(product_id, q) for q in quantities])

        sold = 0
        for quantity, result in zip(quantities, results):
            if isinstance(result, int):
                sold += quantity
            else:
                self.assertIsInstance(result, InsufficientStock)

        self.assertLessEqual(sold, stock)
        self.assertEqual(self._quantity(product_id), stock - sold)

        with self.app.app_context():
            recorded = sum(i.quantity for i in db.session.query(SaleItem).all())
        self.assertEqual(recorded, sold)

    def test_concurrent_void_restores_once(self):
        product_id = self._create_product(5)
        with self.app.app_context():
            sale_id = self._sale_job(product_id, 2)()

        def void_job():
            return sales_service.void_sale(sale_id)

        results = self._run_concurrently([void_job, void_job, void_job])

        voided = [r for r in results if isinstance(r, dict)]
        self.assertEqual(len(voided), 1, results)
        self.assertEqual(self._quantity(product_id), 5)

    def test_adjustments_and_sales_interleave_without_going_negative(self):
        product_id = self._create_product(4)

        def take_all():
            return inventory_service.adjust_stock(product_id, -4)

        results = self._run_concurrently([
            take_all,
            self._sale_job(product_id, 3),
            self._sale_job(product_id, 2),
        ])

        removed = 0
        if isinstance(results[0], dict):
            removed += 4
        else:
            self.assertIsInstance(results[0], NegativeStockError)
        for quantity, result in zip((3, 2), results[1:]):
            if isinstance(result, int):
                removed += quantity
            else:
                self.assertIsInstance(result, InsufficientStock)

        self.assertEqual(self._quantity(product_id), 4 - removed)
        self.assertGreaterEqual(self._quantity(product_id), 0)


if __name__ == "__main__":
    unittest.main()
