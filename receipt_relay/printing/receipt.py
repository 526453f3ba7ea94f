"""
Receipt layouts.

render_kot() and render_bill() walk an OrderData and drive an encoder;
they return nothing. Lines are laid out for a fixed character budget:
48 columns on 80mm paper, 32 columns on anything else.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Protocol

from receipt_relay.printing.order import OrderData, OrderItem


class ReceiptPrinter(Protocol):
    def init(self) -> None: ...
    def set_align(self, align: str) -> None: ...
    def set_font(self, font: str) -> None: ...
    def set_bold(self, bold: bool) -> None: ...
    def set_double_strike(self, enabled: bool) -> None: ...
    def set_size(self, width: int, height: int) -> None: ...
    def write(self, text: str) -> None: ...
    def feed(self, lines: int) -> None: ...
    def cut(self) -> None: ...
    def print_qr_code(self, data: str) -> None: ...
    def print_image(self, url: str) -> None: ...


WIDE_PAPER = "80mm"
WIDE_COLUMNS = 48
NARROW_COLUMNS = 32

CHILD_PREFIX = "  + "
DEFAULT_FOOTER = "Thank you! Visit Again."

_CENT = Decimal("0.01")


@dataclass(frozen=True)
class ItemColumns:
    """
    Widths of the bill's item table. Fields are separated by single spaces.
    """

    name: int
    qty: int
    rate: int
    amount: int

    @property
    def total(self) -> int:
        return self.name + self.qty + self.rate + self.amount + 3

    def row(self, name: str, qty: str, rate: str, amount: str) -> str:
        """
        One table row. Numbers wider than their field take the extra
        columns from the name so the row never exceeds ``total``.
        """
        overflow = sum(
            max(0, len(value) - width)
            for value, width in ((qty, self.qty), (rate, self.rate), (amount, self.amount))
        )
        name_width = max(0, self.name - overflow)
        name = truncate(name, name_width).ljust(name_width)
        return f"{name} {qty:>{self.qty}} {rate:>{self.rate}} {amount:>{self.amount}}\n"


ITEM_COLUMNS = {
    WIDE_COLUMNS: ItemColumns(name=22, qty=4, rate=9, amount=10),
    NARROW_COLUMNS: ItemColumns(name=10, qty=3, rate=8, amount=8),
}


def column_budget(size: str) -> int:
    return WIDE_COLUMNS if size == WIDE_PAPER else NARROW_COLUMNS


def item_columns(size: str) -> ItemColumns:
    return ITEM_COLUMNS[column_budget(size)]


def truncate(text: str, width: int) -> str:
    return text[:width] if len(text) > width else text


def money(value: Decimal) -> str:
    try:
        return str(Decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        raise ValueError(f"Amount out of range: {value}") from None


def _separator(p: ReceiptPrinter, width: int) -> None:
    p.write("-" * width + "\n")


def _bold_line(p: ReceiptPrinter, text: str) -> None:
    p.set_bold(True)
    p.write(text + "\n")
    p.set_bold(False)


# ---------------------------------------------------------------------------
# KOT
# ---------------------------------------------------------------------------


def _kot_children(p: ReceiptPrinter, children: Iterable[OrderItem], width: int, depth: int = 1) -> None:
    indent = "     " + "  " * (depth - 1)
    for child in children:
        prefix = f"{indent}+ {child.quantity:<2} "
        p.write(prefix + truncate(child.name, max(1, width - len(prefix))) + "\n")
        if child.children:
            _kot_children(p, child.children, width, depth + 1)


def render_kot(p: ReceiptPrinter, data: OrderData, size: str) -> None:
    """
    Kitchen order ticket: no prices, quantities first.
    """
    width = column_budget(size)
    opts = data.display_options

    p.init()
    p.set_double_strike(True)

    p.set_align("center")
    p.set_bold(True)
    p.set_size(1, 1)
    p.write("KOT\n")
    p.set_size(0, 0)
    p.set_bold(False)

    if data.store_info.brand_name:
        _bold_line(p, data.store_info.brand_name)

    _separator(p, width)

    p.set_align("left")
    if opts.show_order_number:
        p.write(f"Order #: {data.invoice_no}\n")
    if opts.show_table_info and data.table_no:
        p.set_bold(True)
        p.write(f"Table: {data.table_no}")
        p.set_bold(False)
        if data.order_type:
            p.write(f" ({data.order_type})")
        p.write("\n")
    elif data.order_type:
        p.write(f"Type: {data.order_type}\n")
    if opts.show_customer_name and data.customer_name:
        p.write(f"Customer: {data.customer_name}\n")
    p.write(f"Date: {data.date}\n")

    _separator(p, width)

    _bold_line(p, f"{'Qty':<4} Item")
    _separator(p, width)

    name_width = width - 5
    for item in data.items:
        _bold_line(p, f"{item.quantity:<4} {truncate(item.name, name_width)}")
        if item.variant:
            p.write(f"     Var: {item.variant}\n")
        if item.item_note:
            p.write(f"     Note: {item.item_note}\n")
        _kot_children(p, item.children, width)

    _separator(p, width)
    p.feed(3)
    p.cut()


# ---------------------------------------------------------------------------
# Bill
# ---------------------------------------------------------------------------


def _bill_header(p: ReceiptPrinter, data: OrderData, width: int) -> None:
    store = data.store_info
    p.set_align("center")

    if store.show_logo and store.logo_url:
        p.print_image(store.logo_url)

    if store.brand_name:
        p.set_bold(True)
        p.set_size(1, 1)
        p.write(store.brand_name + "\n")
        p.set_size(0, 0)
        p.set_bold(False)
    if store.display_name:
        p.write(store.display_name + "\n")
    elif store.name:
        p.write(store.name + "\n")
    if store.header_text:
        p.write(store.header_text + "\n")

    for value in (store.address, store.city):
        if value:
            p.write(value + "\n")

    labelled = (
        ("Phone: ", store.contact_number),
        ("Email: ", store.email),
        ("GSTIN: ", store.gst),
        ("FSSAI (State): ", store.fssai_state),
        ("FSSAI (Central): ", store.fssai_central),
        ("CIN: ", store.cin),
        ("LLPIN: ", store.llpin),
    )
    for label, value in labelled:
        if value:
            p.write(label + value + "\n")

    p.write("\n")
    _bold_line(p, "TAX INVOICE")
    _separator(p, width)


def _bill_transaction(p: ReceiptPrinter, data: OrderData, width: int) -> None:
    p.set_align("left")
    p.write(f"Invoice No: {data.invoice_no}\n")
    p.write(f"Date: {data.date}\n")
    if data.order_source:
        p.write(f"Source: {data.order_source}\n")
    if data.order_type:
        p.write(f"Type: {data.order_type}\n")
    if data.table_no:
        p.write(f"Table: {data.table_no}\n")

    if data.display_options.show_customer_info:
        if data.customer_name:
            p.write(f"Customer: {data.customer_name}\n")
        if data.customer_contact:
            p.write(f"Phone: {data.customer_contact}\n")

    _separator(p, width)


def _bill_item_line(p: ReceiptPrinter, cols: ItemColumns, name: str, item: OrderItem) -> None:
    p.write(cols.row(name, str(item.quantity), money(item.price), money(item.line_total)))


def _bill_children(
    p: ReceiptPrinter, cols: ItemColumns, children: Iterable[OrderItem], width: int, depth: int = 1
) -> None:
    prefix = "  " * (depth - 1) + CHILD_PREFIX
    for child in children:
        if child.price > 0:
            _bill_item_line(p, cols, prefix + child.name, child)
        else:
            p.write(truncate(prefix + child.name, width) + "\n")
        if child.children:
            _bill_children(p, cols, child.children, width, depth + 1)


def _bill_items(p: ReceiptPrinter, data: OrderData, width: int, cols: ItemColumns) -> None:
    _bold_line(p, cols.row("Item", "Qty", "Rate", "Total").rstrip("\n"))
    _separator(p, width)

    for item in data.items:
        _bill_item_line(p, cols, item.name, item)
        if item.variant:
            p.write(f"  Var: {item.variant}\n")
        if item.item_note:
            p.write(f"  Note: {item.item_note}\n")
        _bill_children(p, cols, item.children, width)

    _separator(p, width)


def _bill_totals(p: ReceiptPrinter, data: OrderData, width: int) -> None:
    p.set_align("right")
    p.write(f"Subtotal: {money(data.sub_total)}\n")

    if data.display_options.show_discount_breakdown:
        for d in data.discount_breakdown:
            p.write(f"{d.name}: -{money(d.amount)}\n")

    for c in data.charges:
        p.write(f"{c.name}: {money(c.amount)}\n")

    if data.tax > 0:
        p.write(f"Total Tax: {money(data.tax)}\n")

    _separator(p, width)

    p.set_bold(True)
    p.set_size(0, 1)
    p.write(f"GRAND TOTAL: {money(data.total)}\n")
    p.set_size(0, 0)
    p.set_bold(False)

    _separator(p, width)


def _bill_tax_breakdown(p: ReceiptPrinter, data: OrderData, width: int) -> None:
    if not (data.display_options.show_tax_breakdown and data.tax_breakdown):
        return
    p.set_align("left")
    p.write("Tax Details:\n")
    for t in data.tax_breakdown:
        p.write(f" {t.name} @ {money(t.rate)}% : {money(t.amount)}\n")
    _separator(p, width)


def _bill_footer(p: ReceiptPrinter, data: OrderData) -> None:
    store = data.store_info
    opts = data.display_options
    p.set_align("center")

    if opts.show_payment_details:
        if data.payments:
            p.write("Payment Mode:\n")
            for pay in data.payments:
                p.write(f"{pay.mode}: {money(pay.amount)}\n")
        elif data.payment_mode:
            p.write(f"Payment Mode: {data.payment_mode}\n")

    if data.cashier_name:
        p.write(f"Cashier: {data.cashier_name}\n")

    p.write("\n")
    p.write((store.policy or store.footer_text or DEFAULT_FOOTER) + "\n")

    if store.website:
        p.write(f"Visit: {store.website}\n")

    if opts.show_qr_code and opts.qr_code_data:
        p.write("\n")
        p.print_qr_code(opts.qr_code_data)


def render_bill(p: ReceiptPrinter, data: OrderData, size: str) -> None:
    """
    Customer bill / tax invoice.

    Line amounts are recomputed as quantity x price; subtotal, tax and total
    are printed as supplied by the caller.
    """
    width = column_budget(size)
    cols = item_columns(size)

    p.init()
    p.set_double_strike(True)

    _bill_header(p, data, width)
    _bill_transaction(p, data, width)
    _bill_items(p, data, width, cols)
    _bill_totals(p, data, width)
    _bill_tax_breakdown(p, data, width)
    _bill_footer(p, data)

    p.feed(4)
    p.cut()


def render(p: ReceiptPrinter, data: OrderData, size: str, receipt_type: str) -> None:
    if receipt_type == "kot":
        render_kot(p, data, size)
    else:
        render_bill(p, data, size)


__all__ = [
    "ITEM_COLUMNS",
    "ItemColumns",
    "ReceiptPrinter",
    "column_budget",
    "item_columns",
    "money",
    "render",
    "render_bill",
    "render_kot",
    "truncate",
]
