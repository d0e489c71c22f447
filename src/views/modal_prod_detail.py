from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Label, MarkdownViewer, Select

from db.crud import get_product
from db.models import ColorOption, Product
from shop.pricing import effective_price
from utils.i18n import pick
from utils.logger import get_logger
from utils.pure import format_money, generate_markdown_table

_logger = get_logger(__name__)


class ProdDetailModal(ModalScreen[bool]):
    """
    product detail plus add-to-cart
    Will return true if the cart changed, false if not
    """

    def __init__(self, pid: str) -> None:
        super().__init__()

        self._pid = pid
        self._prod: Product = None

    def compose(self) -> ComposeResult:
        lang = self.app.state.lang
        with Horizontal(id="hort-prod-detail"):
            yield MarkdownViewer("", show_table_of_contents=False)
            with Vertical():
                yield Label(pick("اللون", "Color", lang), id="label-color")
                yield Select([], id="select-color", allow_blank=True)
                yield Label("", id="label-in-cart")
                with Horizontal():
                    yield Button(pick("رجوع", "Go Back", lang), id="btn-quit")
                    yield Button(
                        pick("أضف إلى السلة", "Add to Cart", lang),
                        id="btn-addcart",
                        variant="primary",
                    )

    async def on_mount(self):
        lang = self.app.state.lang
        self._prod = await get_product(self.app.state.backend.db, self._pid)
        if self._prod is None:
            self.app.notify(
                pick("المنتج غير موجود.", "Product not found.", lang), severity="error"
            )
            self.dismiss(False)
            return

        prod = self._prod
        price_now = effective_price(prod)
        table_rows = [
            [pick("الاسم", "Name", lang), pick(prod.name, prod.name_en, lang)],
            [pick("السعر", "Price", lang), format_money(prod.price)],
            [pick("السعر الحالي", "Price now", lang), format_money(price_now)],
            [pick("المخزون", "Stock", lang), prod.stock],
            [pick("الفئة", "Category", lang), prod.category],
        ]
        if prod.discount_type == "timed" and prod.discount_end:
            table_rows.append(
                [pick("ينتهي الخصم", "Offer ends", lang), prod.discount_end.date()]
            )
        md_table_str = generate_markdown_table(
            [pick("الخاصية", "Attribute", lang), pick("القيمة", "Value", lang)],
            table_rows,
            ["l", "l"],
        )
        header_md = f"### {pick(prod.name, prod.name_en, lang)}\n\n"
        desc_md = f"\n\n{prod.description}\n" if prod.description else ""
        await self.query_one(MarkdownViewer).document.update(
            header_md + md_table_str + desc_md
        )

        select_color = self.query_one("#select-color", Select)
        if prod.colors:
            select_color.set_options(
                [(pick(c.name, c.name_en, lang), c.id) for c in prod.colors]
            )
            select_color.value = prod.colors[0].id
        else:
            select_color.display = False
            self.query_one("#label-color").display = False

        # stock is shown but not enforced; the decrement happens after checkout
        if prod.stock < 1:
            order_btn = self.query_one("#btn-addcart", Button)
            order_btn.label = pick("غير متوفر", "Out of Stock", lang)
            order_btn.disabled = True
            order_btn.variant = "warning"

        self.refresh_in_cart()
        self.query_one("#btn-addcart").focus()

    def _selected_color(self) -> ColorOption:
        value = self.query_one("#select-color", Select).value
        if not isinstance(value, str):
            return None
        for color in self._prod.colors:
            if color.id == value:
                return color
        return None

    @on(Select.Changed, "#select-color")
    def refresh_in_cart(self) -> None:
        if self._prod is None:
            return
        color = self._selected_color()
        item = self.app.state.cart.find(self._pid, color.id if color else None)
        qty = item.quantity if item else 0
        self.query_one("#label-in-cart", Label).update(
            pick(f"في السلة: {qty}", f"In cart: {qty}", self.app.state.lang)
        )

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(False)

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(False)

    @on(Button.Pressed, "#btn-addcart")
    @work(exclusive=True)
    async def handle_addcart(self):
        lang = self.app.state.lang
        color = self._selected_color()
        if self._prod.colors and color is None:
            self.app.notify(
                pick("يرجى اختيار اللون.", "Pick a color first.", lang),
                severity="warning",
            )
            return

        item = self.app.state.cart.add(self._prod, color)
        _logger.debug(f"Cart line {item.product_id}/{item.color_id} -> {item.quantity}")
        self.app.notify(
            pick("تمت الإضافة إلى السلة", "Item added to cart successfully.", lang)
        )
        self.dismiss(True)
