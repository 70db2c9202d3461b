"""Email templates — order confirmation and abandoned-cart recovery.

Each template renders a subject and a plain-text body from a context dict.
"""


def format_amount(amount, currency):
    return f"{int(round(amount or 0)):,} {currency}".replace(",", " ")


class OrderConfirmationTemplate:
    name = "order_confirmation"

    @staticmethod
    def render(context: dict) -> dict:
        order_number = context.get("order_number", "N/A")
        currency = context.get("currency", "XOF")
        lines = [
            f"- {item['product_name']} x{item['quantity']}: {format_amount(item['unit_price'] * item['quantity'], currency)}"
            for item in context.get("items", [])
        ]
        tracking_url = context.get("tracking_url")
        body = (
            f"Hello {context.get('customer_name', '')},\n\n"
            f"Thank you for your order {order_number} from {context.get('store_name') or 'our store'}.\n\n"
            + "\n".join(lines)
            + f"\n\nTotal: {format_amount(context.get('total'), currency)}\n"
        )
        if tracking_url:
            body += f"\nFollow your order: {tracking_url}\n"
        return {"subject": f"Order {order_number} received", "body": body}


class CartRecoveryTemplate:
    name = "cart_recovery"

    @staticmethod
    def render(context: dict) -> dict:
        currency = context.get("currency", "XOF")
        body = (
            f"Hello {context.get('customer_name') or ''},\n\n"
            "You left some items in your cart:\n"
            + "\n".join(f"- {item.get('name')} x{item.get('quantity', 1)}" for item in context.get("items", []))
            + f"\n\nCart total: {format_amount(context.get('cart_total'), currency)}\n"
        )
        code = context.get("recovery_code")
        if code:
            body += f"\nUse the code {code} for {context.get('discount_percent')}% off your order.\n"
        return {"subject": "Your cart is waiting for you", "body": body}


TEMPLATES = {
    OrderConfirmationTemplate.name: OrderConfirmationTemplate,
    CartRecoveryTemplate.name: CartRecoveryTemplate,
}


def get_template(name: str):
    template_cls = TEMPLATES.get(name)
    if template_cls is None:
        raise ValueError(f"No template registered under: {name}")
    return template_cls
