from __future__ import annotations
from decimal import Decimal, ROUND_HALF_UP
from typing import Sequence, Union
from urllib.parse import quote

from storefront.domain.models.cart import CartLine
from storefront.domain.services.constants import ORDER_RULE

Number = Union[Decimal, int, float, str]

_CENTS = Decimal("0.01")
# characters encodeURIComponent leaves alone, on top of quote()'s defaults
_URI_SAFE = "!~*'()"


class OrderFormatter:
    """
    Renders cart lines into the order transcript sent to the shop owner,
    and wraps a transcript into the messaging deep link.
    The layout is consumed by a chat app, so keep it byte-stable.
    """

    def __init__(
        self,
        *,
        currency_symbol: str = "$",
        currency_position: str = "before",
        message_prefix: str = "🛒 *New Order from Shopping Site*\n\n",
        phone_number: str = "",
        share_uri_template: str = "https://wa.me/{phone}?text={text}",
    ):
        self.currency_symbol = currency_symbol
        self.currency_position = currency_position
        self.message_prefix = message_prefix
        self.phone_number = phone_number
        self.share_uri_template = share_uri_template

    @classmethod
    def from_settings(cls, settings) -> "OrderFormatter":
        return cls(
            currency_symbol=settings.currency_symbol,
            currency_position=settings.currency_position,
            message_prefix=settings.order_message_prefix,
            phone_number=settings.WHATSAPP_PHONE,
            share_uri_template=settings.share_uri_template,
        )

    def format_price(self, amount: Number) -> str:
        """Two decimals, half-up, symbol before or after per configuration."""
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
        number = f"{value.quantize(_CENTS, rounding=ROUND_HALF_UP):.2f}"
        if self.currency_position == "before":
            return f"{self.currency_symbol}{number}"
        return f"{number}{self.currency_symbol}"

    def format(
        self,
        items: Sequence[CartLine],
        total: Number,
        customer_name: str = "",
        notes: str = "",
    ) -> str:
        parts = [self.message_prefix]

        if customer_name:
            parts.append(f"👤 Customer: {customer_name}\n\n")

        parts.append("📦 *Order Details:*\n")
        parts.append(f"{ORDER_RULE}\n")

        for i, line in enumerate(items, start=1):
            p = line.product
            parts.append(f"{i}. {p.name}\n")
            parts.append(
                f"   Qty: {line.quantity} × {self.format_price(p.price)} = {self.format_price(line.line_total)}\n\n"
            )

        parts.append(f"{ORDER_RULE}\n")
        parts.append(f"💰 *Total: {self.format_price(total)}*\n")

        if notes:
            parts.append(f"\n📝 *Notes:*\n{notes}")

        return "".join(parts)

    def to_share_uri(self, message: str) -> str:
        return self.share_uri_template.format(
            phone=self.phone_number,
            text=quote(message, safe=_URI_SAFE),
        )
