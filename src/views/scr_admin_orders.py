from math import ceil
from typing import List, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.reactive import reactive
from textual.widgets import Button, DataTable, Label, MarkdownViewer, Select

import db.crud
from db.models import ORDER_STATUS_TRANSITIONS, Order
from shop.admin import change_order_status
from shop.errors import PersistenceError, StoreError
from utils.i18n import pick, t
from utils.messages import NewOrderMessage, PersistenceErrorMessage
from utils.pure import format_money
from views.base_screen import BaseScreen
from views.scr_past_orders import render_order_markdown

PAGE_SIZE = 10


class AdminOrdersScreen(BaseScreen):
    """
    All orders, newest first. The admin moves the highlighted order along
    its status lifecycle.
    """

    page_idx = reactive(1, init=False)
    page_cnt = reactive(1)

    def __init__(self) -> None:
        super().__init__()
        self._orders: List[Order] = []
        self._selected: Optional[Order] = None

    def compose(self) -> ComposeResult:
        lang = self.app.state.lang
        yield from super().compose()
        with Vertical():
            yield MarkdownViewer(id="md-order-detail", show_table_of_contents=False)
            with Horizontal(id="hort-status-controls"):
                yield Select([], id="select-status", prompt=pick("الحالة الجديدة", "New status", lang))
                yield Button(pick("تحديث", "Update", lang), id="btn-update-status", variant="success")
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
            pick("العميل", "Customer", lang),
            pick("الولاية", "State", lang),
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

    def watch_page_idx(self, old: int, new: int) -> None:
        self._load_orders(new)

    @on(Button.Pressed, "#btn-prev")
    def handle_prev(self) -> None:
        if self.page_idx > 1:
            self.page_idx -= 1

    @on(Button.Pressed, "#btn-next")
    def handle_next(self) -> None:
        if self.page_idx < self.page_cnt:
            self.page_idx += 1

    @on(DataTable.RowHighlighted)
    def handle_row_highlight(self, event: DataTable.RowHighlighted) -> None:
        idx = event.cursor_row
        self._select(self._orders[idx] if 0 <= idx < len(self._orders) else None)

    def _select(self, order: Optional[Order]) -> None:
        lang = self.app.state.lang
        self._selected = order
        self.query_one("#md-order-detail", MarkdownViewer).document.update(
            render_order_markdown(order, lang)
        )
        select = self.query_one("#select-status", Select)
        next_states = ORDER_STATUS_TRANSITIONS.get(order.status, ()) if order else ()
        select.set_options([(t("status." + s, lang), s) for s in next_states])
        select.disabled = not next_states
        self.query_one("#btn-update-status", Button).disabled = not next_states

    @work(exclusive=True, group="orders")
    async def _load_orders(self, page: int) -> None:
        lang = self.app.state.lang
        orders, total = await db.crud.list_all_orders(
            self.app.state.backend.db, page, PAGE_SIZE
        )

        table = self.query_one(DataTable)
        table.clear()
        for o in orders:
            table.add_row(
                o.id,
                f"{o.created_at:%Y-%m-%d %H:%M}",
                o.customer.full_name,
                o.customer.region,
                t("status." + o.status, lang),
                format_money(o.total_price),
            )
        self._orders = orders
        self.page_cnt = max(ceil(total / PAGE_SIZE), 1)
        self.query_one("#btn-prev", Button).disabled = self.page_idx <= 1
        self.query_one("#btn-next", Button).disabled = self.page_idx >= self.page_cnt
        self.query_one("#label-page", Label).update(f" {self.page_idx} / {self.page_cnt} ")
        if orders:
            table.move_cursor(row=0)
            self._select(orders[0])
        else:
            self._select(None)

    @on(Button.Pressed, "#btn-update-status")
    @work(exclusive=True)
    async def handle_update_status(self) -> None:
        state = self.app.state
        lang = state.lang
        new_status = self.query_one("#select-status", Select).value
        if self._selected is None or not isinstance(new_status, str):
            self.notify(pick("اختر الحالة أولاً.", "Pick a status first.", lang), severity="warning")
            return

        try:
            order = await change_order_status(
                state.backend, state.session, self._selected.id, new_status
            )
        except PersistenceError as e:
            self.app.post_message(PersistenceErrorMessage(e))
            return
        except StoreError as e:
            self.notify(e.localized(lang), severity="error")
            self._load_orders(self.page_idx)
            return

        self.notify(
            pick("تم تحديث الحالة", "Status updated", lang)
            + f": {t('status.' + order.status, lang)}"
        )
        self._load_orders(self.page_idx)
