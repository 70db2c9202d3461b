"""Store order placement — command and handler used by the checkout orchestrator.

One command persists one store leg: the store-scoped customer upsert, the
Order and its Items commit together or not at all. Stock has already been
taken by the orchestrator before this command runs.
"""

import json

from protean import handle
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from commerce.customer.customer import StoreCustomer, upsert_store_customer
from commerce.domain import commerce
from commerce.order.order import Order


@commerce.command(part_of="Order")
class PlaceStoreOrder:
    store_id = Identifier(required=True)
    order_number = String(required=True, max_length=50)
    tracking_token = String(required=True, max_length=64)
    items = Text(required=True)  # JSON: list of {product_id, product_name, quantity, unit_price}
    customer = Text(required=True)  # JSON: {first_name, last_name, email, phone}
    delivery = Text(required=True)  # JSON: {method, city, quarter, address, relay_point_id}
    shipping_cost = Float(default=0.0)
    currency = String(max_length=3, default="XOF")
    payment_method = String(required=True, max_length=20)
    notes = Text()


@commerce.command_handler(part_of=Order)
class PlaceStoreOrderHandler:
    @handle(PlaceStoreOrder)
    def place_store_order(self, command):
        items = json.loads(command.items) if isinstance(command.items, str) else command.items
        customer = json.loads(command.customer) if isinstance(command.customer, str) else command.customer
        delivery = json.loads(command.delivery) if isinstance(command.delivery, str) else command.delivery

        store_customer = upsert_store_customer(command.store_id, customer, delivery)

        order = Order.place(
            store_id=command.store_id,
            order_number=command.order_number,
            tracking_token=command.tracking_token,
            items_data=items,
            customer=customer,
            delivery=delivery,
            shipping_cost=command.shipping_cost or 0.0,
            payment_method=command.payment_method,
            customer_id=str(store_customer.id),
            notes=command.notes,
            currency=command.currency or "XOF",
        )
        store_customer.record_order(placed_at=order.created_at)

        current_domain.repository_for(StoreCustomer).add(store_customer)
        current_domain.repository_for(Order).add(order)
        return str(order.id)
