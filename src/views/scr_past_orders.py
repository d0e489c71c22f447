from math import ceil
from typing import List, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.reactive import reactive
from textual.widgets import Button, DataTable, Label, MarkdownViewer

import db.crud
from db.models import Order
from utils.i18n import pick, t
from utils.messages import NewOrderMessage
from utils.pure import format_money, generate_markdown_table
from views.base_screen import BaseScreen

PAGE_SIZE = 5


def render_order_markdown(order: Optional[Order], lang: str) -> str:
    """Markdown detail for one order; shared with the admin orders screen."""
    if order is None:
        return "### " + pick("اختر طلباً لعرض تفاصيله.", "Select an order to view its details.", lang)

    customer = order.customer
    header = (
        f"### {pick('طلب', 'Order', lang)} `{order.id}`\n\n"
        f"{pick('التاريخ', 'Date', lang)}: {order.created_at:%Y-%m-%d %H:%M}  \n"
        f"{pick('الحالة', 'Status', lang)}: {t('status.' + order.status, lang)}  \n"
        f"{pick('العميل', 'Customer', lang)}: {customer.full_name} ({customer.phone})  \n"
        f"{pick('العنوان', 'Ship To', lang)}: {customer.address}, {customer.region}\n\n"
    )
    rows = [
        [
            pick(item.name, item.name_en, lang),
            item.color_label or "-",
            item.quantity,
            format_money(item.price),
            format_money(item.price * item.quantity),
        ]
        for item in order.items
    ]
    table = generate_markdown_table(
        [
            pick("المنتج", "Product", lang),
            pick("اللون", "Color", lang),
            pick("الكمية", "Qty", lang),
            pick("السعر", "Unit Price", lang),
            pick("المجموع", "Line Total", lang),
        ],
        rows,
        ["l", "l", "r", "r", "r"],
    )
    footer = (
        f"\n\n**{pick('الشحن', 'Shipping', lang)}:** {format_money(order.shipping_fee)}"
        f"\n\n**{pick('الإجمالي', 'Grand Total', lang)}:** {format_money(order.total_price)}"
    )
    return header + table + footer


class PastOrdersScreen(BaseScreen):
    """
    Signed-in customers browse their own orders, newest first, with details.

    Layout:
    - Markdown detail view at the top, showing the highlighted order.
    - Orders table below, 5 per page with Prev/Next.
    """

    # footer hints only
    BINDINGS = [
        Binding("enter", "noop", "View Order Detail", show=True, key_display="⏎"),
    ]

    page_idx = reactive(1, init=False)
    page_cnt = reactive(1)

    def __init__(self) -> None:
        super().__init__()
        self._orders: List[Order] = []

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield MarkdownViewer(id="md-order-detail", show_table_of_contents=False)
            yield DataTable(id="table-orders")
        with Horizontal(id="hort-table-control"):
            yield Button("<", id="btn-prev")
            yield Label(" 1 / 1 ", id="label-page")
            yield Button(">", id="btn-next")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        self._setup_columns()

    def _setup_columns(self) -> None:
        lang = self.app.state.lang
        table = self.query_one(DataTable)
        table.clear(columns=True)
        table.add_columns(
            pick("رقم الطلب", "Order", lang),
            pick("التاريخ", "Date", lang),
            pick("الحالة", "Status", lang),
            pick("الإجمالي", "Total", lang),
        )

    def on_lang_changed(self) -> None:
        self._setup_columns()
        self._load_orders(self.page_idx)

    @on(ScreenResume)
    @on(NewOrderMessage)
    def handle_refresh(self):
        self._load_orders(self.page_idx)

    @on(DataTable.RowHighlighted)
    def handle_row_highlight(self, event: DataTable.RowHighlighted) -> None:
        idx = event.cursor_row
        order = self._orders[idx] if 0 <= idx < len(self._orders) else None
        self._render_detail(order)

    def watch_page_idx(self, old: int, new: int) -> None:
        self._load_orders(new)

    def _refresh_buttons(self) -> None:
        self.query_one("#btn-prev", Button).disabled = self.page_idx <= 1
        self.query_one("#btn-next", Button).disabled = self.page_idx >= self.page_cnt
        self.query_one("#label-page", Label).update(f" {self.page_idx} / {self.page_cnt} ")

    @on(Button.Pressed, "#btn-prev")
    def handle_prev(self) -> None:
        if self.page_idx > 1:
            self.page_idx -= 1

    @on(Button.Pressed, "#btn-next")
    def handle_next(self) -> None:
        if self.page_idx < self.page_cnt:
            self.page_idx += 1

    @work(exclusive=True, group="orders")
    async def _load_orders(self, page: int) -> None:
        lang = self.app.state.lang
        uid = self.app.state.uid
        if uid is None:
            orders, total = [], 0
        else:
            orders, total = await db.crud.list_orders_for_user(
                self.app.state.backend.db, uid, page, PAGE_SIZE
            )

        table = self.query_one(DataTable)
        table.clear()
        for o in orders:
            table.add_row(
                o.id,
                f"{o.created_at:%Y-%m-%d}",
                t("status." + o.status, lang),
                format_money(o.total_price),
            )
        self._orders = orders
        self.page_cnt = max(ceil(total / PAGE_SIZE), 1)
        self._refresh_buttons()
        if orders:
            table.move_cursor(row=0)
            self._render_detail(orders[0])
        else:
            self._render_detail(None)

    def _render_detail(self, order: Optional[Order]) -> None:
        md = render_order_markdown(order, self.app.state.lang)
        self.query_one("#md-order-detail", MarkdownViewer).document.update(md)
