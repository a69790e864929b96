"""Order store for conversion and limit orders.

Provides SQLite-based storage of every order the bot submits, successful or
not, keyed by order ID and queryable by chat and recency.
"""

import logging
import sqlite3
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from ..models import Order, OrderStatus

logger = logging.getLogger(__name__)


class OrderStore:
    """SQLite-backed table of submitted orders.

    Amounts are stored as text so that a Decimal written is the Decimal read
    back. Timestamps are ISO-8601 strings with microseconds, which sort
    chronologically as text.

    Attributes:
        db_path: Path to SQLite database file.
    """

    def __init__(self, db_path: str = "data/orders.db"):
        """Initialize order store and create the schema if needed.

        Args:
            db_path: Path to SQLite database file.
        """
        self.db_path = db_path

        # Create data directory if it doesn't exist
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self._init_database()
        logger.info(f"Order store initialized with database: {db_path}")

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_database(self) -> None:
        """Create orders table if it doesn't exist."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS orders (
                    orderId TEXT PRIMARY KEY,
                    chatId INTEGER NOT NULL,
                    fromAsset TEXT NOT NULL,
                    toAsset TEXT NOT NULL,
                    amount TEXT NOT NULL,
                    status TEXT NOT NULL,
                    error TEXT,
                    timestamp TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_orders_chat_timestamp
                ON orders(chatId, timestamp)
            """)

            conn.commit()

    @staticmethod
    def _row_to_order(row: sqlite3.Row) -> Order:
        return Order(
            order_id=row["orderId"],
            chat_id=row["chatId"],
            from_asset=row["fromAsset"],
            to_asset=row["toAsset"],
            amount=Decimal(row["amount"]),
            status=OrderStatus(row["status"]),
            error=row["error"],
            timestamp=datetime.fromisoformat(row["timestamp"]),
        )

    def insert(self, order: Order) -> None:
        """Record a new order.

        Args:
            order: Order to persist; its timestamp becomes the creation time.

        Raises:
            sqlite3.IntegrityError: If the order ID already exists.
        """
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO orders
                (orderId, chatId, fromAsset, toAsset, amount, status, error, timestamp)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    order.order_id,
                    order.chat_id,
                    order.from_asset,
                    order.to_asset,
                    str(order.amount),
                    order.status.value,
                    order.error,
                    order.timestamp.isoformat(timespec="microseconds"),
                ),
            )
            conn.commit()

        logger.info(f"Recorded order {order.order_id} for chat {order.chat_id}: {order.status.value}")

    def get(self, order_id: str, chat_id: int) -> Order | None:
        """Look up an order owned by a chat.

        Args:
            order_id: Order identifier.
            chat_id: Owning chat.

        Returns:
            The order, or None if no row matches both keys.
        """
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM orders WHERE orderId = ? AND chatId = ?",
                (order_id, chat_id),
            ).fetchone()

        return self._row_to_order(row) if row else None

    def update_status(self, order_id: str, status: OrderStatus) -> bool:
        """Change the status of an order; no other column is touched.

        Args:
            order_id: Order identifier.
            status: New status.

        Returns:
            True if a row was updated.
        """
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE orders SET status = ? WHERE orderId = ?",
                (status.value, order_id),
            )
            conn.commit()
            updated = cursor.rowcount > 0

        if not updated:
            logger.warning(f"Status update for unknown order {order_id} ignored")
        return updated

    def recent(self, chat_id: int, limit: int = 10) -> list[Order]:
        """Get the most recent orders of a chat.

        Args:
            chat_id: Owning chat.
            limit: Maximum number of orders to return.

        Returns:
            Orders sorted newest first.
        """
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM orders
                WHERE chatId = ?
                ORDER BY timestamp DESC, rowid DESC
                LIMIT ?
                """,
                (chat_id, limit),
            ).fetchall()

        return [self._row_to_order(row) for row in rows]
