"""SQL stock guard — conditional UPDATE against the ``product_stock`` table.

The decrement is one statement, so the database serialises concurrent
checkouts on the row: two sessions can never both take the last unit.
"""

import structlog
from sqlalchemy import Column, Integer, MetaData, String, Table, create_engine, select, update
from sqlalchemy.engine import Engine

from commerce.stock.port import StockGuard, check_quantity

logger = structlog.get_logger(__name__)

metadata = MetaData()

product_stock = Table(
    "product_stock",
    metadata,
    Column("product_id", String(64), primary_key=True),
    Column("stock_quantity", Integer, nullable=False, default=0),
)


class SqlStockGuard(StockGuard):
    """Stock guard backed by any SQLAlchemy-supported database."""

    def __init__(self, engine: Engine | str):
        self.engine = create_engine(engine) if isinstance(engine, str) else engine

    def create_table(self) -> None:
        metadata.create_all(self.engine)

    def drop_table(self) -> None:
        metadata.drop_all(self.engine)

    def set_level(self, product_id: str, quantity: int) -> None:
        if quantity < 0:
            raise ValueError("Stock level cannot be negative")
        with self.engine.begin() as conn:
            result = conn.execute(
                update(product_stock)
                .where(product_stock.c.product_id == str(product_id))
                .values(stock_quantity=quantity)
            )
            if result.rowcount == 0:
                conn.execute(product_stock.insert().values(product_id=str(product_id), stock_quantity=quantity))

    def decrement_stock(self, product_id: str, quantity: int) -> bool:
        check_quantity(quantity)
        statement = (
            update(product_stock)
            .where(product_stock.c.product_id == str(product_id))
            .where(product_stock.c.stock_quantity >= quantity)
            .values(stock_quantity=product_stock.c.stock_quantity - quantity)
        )
        with self.engine.begin() as conn:
            result = conn.execute(statement)

        taken = result.rowcount == 1
        if not taken:
            logger.info("Stock decrement refused", product_id=str(product_id), quantity=quantity)
        return taken

    def restock(self, product_id: str, quantity: int) -> None:
        check_quantity(quantity)
        with self.engine.begin() as conn:
            result = conn.execute(
                update(product_stock)
                .where(product_stock.c.product_id == str(product_id))
                .values(stock_quantity=product_stock.c.stock_quantity + quantity)
            )
            if result.rowcount == 0:
                conn.execute(product_stock.insert().values(product_id=str(product_id), stock_quantity=quantity))

    def available(self, product_id: str) -> int | None:
        with self.engine.connect() as conn:
            return conn.execute(
                select(product_stock.c.stock_quantity).where(product_stock.c.product_id == str(product_id))
            ).scalar_one_or_none()
