from textual import events, on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.reactive import reactive
from textual.widgets import DataTable, Input, Select

import db.crud
from shop.pricing import effective_price
from utils.i18n import pick
from utils.messages import CartChangedMessage
from utils.pure import format_money
from views.base_screen import BaseScreen
from views.modal_prod_detail import ProdDetailModal


class CatalogScreen(BaseScreen):
    """
    product browsing, open to guests and signed-in customers
    """

    # footer hints only
    BINDINGS = [
        Binding("fn+shift+1", "abs(1)", "View Product", show=True, key_display="⏎"),
    ]

    query_str = reactive("", init=False)
    category = reactive("", init=False)

    def __init__(self):
        super().__init__()

    def compose(self) -> ComposeResult:
        lang = self.app.state.lang
        yield from super().compose()
        with Horizontal(id="div-catalog-filters"):
            yield Select(
                [],
                prompt=pick("كل الفئات", "All categories", lang),
                id="select-category",
            )
            yield Input(
                id="input-search",
                placeholder=pick("ابحث عن منتج...", "Start typing to search...", lang),
            )
        yield DataTable(id="table-search-result")

    async def on_mount(self):
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        self._setup_columns()

        categories = await db.crud.list_categories(self.app.state.backend.db)
        lang = self.app.state.lang
        self.query_one("#select-category", Select).set_options(
            [(pick(c.name, c.name_en, lang), c.slug) for c in categories]
        )

        self.update_search_result()
        self.query_one("#input-search").focus()

    def _setup_columns(self) -> None:
        lang = self.app.state.lang
        table = self.query_one(DataTable)
        table.clear(columns=True)
        table.add_column("ID", key="id")
        table.add_column(pick("المنتج", "Product", lang), key="name")
        table.add_column(pick("السعر", "Price", lang), key="price")
        table.add_column(pick("بعد الخصم", "Now", lang), key="effective")
        table.add_column(pick("المخزون", "Stock", lang), key="stock")
        table.add_column(pick("الألوان", "Colors", lang), key="colors")

    def on_lang_changed(self) -> None:
        self._setup_columns()
        self.update_search_result()

    async def on_input_changed(self, message: Input.Changed) -> None:
        if message.input.id == "input-search":
            self.query_str = message.value

    @on(Select.Changed, "#select-category")
    def handle_category_changed(self, event: Select.Changed) -> None:
        self.category = event.value if isinstance(event.value, str) else ""

    def watch_query_str(self, _, __) -> None:
        self.update_search_result()

    def watch_category(self, _, __) -> None:
        self.update_search_result()

    async def on_key(self, event: events.Key) -> None:
        table = self.query_one(DataTable)
        if event.key == "enter" and self.focused == table and table.row_count:
            self.open_product(table.get_row_at(table.cursor_row)[0])

    @work()
    async def open_product(self, pid: str) -> None:
        if await self.app.push_screen_wait(ProdDetailModal(pid)):
            self.app.post_message(CartChangedMessage())
            await self.refresh_sidebar()

    @work(exclusive=True)
    async def update_search_result(self) -> None:
        if not self.is_mounted:
            return
        lang = self.app.state.lang
        products = await db.crud.list_products(
            self.app.state.backend.db, self.category or None, self.query_str
        )

        table = self.query_one(DataTable)
        table.clear()
        table.add_rows(
            [
                (
                    p.id,
                    pick(p.name, p.name_en, lang),
                    format_money(p.price),
                    format_money(effective_price(p)),
                    p.stock,
                    ", ".join(pick(c.name, c.name_en, lang) for c in p.colors) or "-",
                )
                for p in products
            ]
        )
