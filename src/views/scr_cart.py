from textual import on, work
from textual.app import ComposeResult
from textual.containers import Container, Horizontal, HorizontalGroup, VerticalScroll
from textual.events import ScreenResume
from textual.message import Message
from textual.widgets import Button, Label, Rule

from db.models import CartItem
from utils.i18n import pick
from utils.messages import CartChangedMessage
from utils.pure import format_money
from views.base_screen import BaseScreen
from views.modal_checkout import CheckoutModal
from views.modal_dialog import DialogModal


class CartItemQtyMessage(Message):
    bubble = True

    def __init__(self, item: CartItem, delta: int):
        super().__init__()
        self.item = item
        self.delta = delta


class CartItemRemoveMessage(Message):
    bubble = True

    def __init__(self, item: CartItem):
        super().__init__()
        self.item = item


class CartItemWidget(HorizontalGroup):
    def __init__(self, item: CartItem, lang: str):
        super().__init__()
        self.item = item
        self.lang = lang

    def compose(self):
        item = self.item
        name = pick(item.name, item.name_en, self.lang)
        if item.color:
            name += f" ({pick(item.color.name, item.color.name_en, self.lang)})"
        with Container(id="div-cart-item-group"):
            with Container(id="div-item"):
                yield Label(name, id="label-item-name")
                yield Label(format_money(item.price), id="label-item-price")
                yield Label(
                    format_money(item.price * item.quantity), id="label-item-line"
                )
            with Container(id="div-actions"):
                yield Button("-", id="btn-item-sub")
                yield Label(str(item.quantity), id="label-item-qty")
                yield Button("+", id="btn-item-add")
                yield Button(
                    pick("حذف", "Remove", self.lang), id="btn-item-remove", variant="error"
                )

    @on(Button.Pressed, "#btn-item-sub")
    def handle_sub(self):
        self.post_message(CartItemQtyMessage(self.item, -1))

    @on(Button.Pressed, "#btn-item-add")
    def handle_add(self):
        self.post_message(CartItemQtyMessage(self.item, 1))

    @on(Button.Pressed, "#btn-item-remove")
    def handle_remove(self):
        self.post_message(CartItemRemoveMessage(self.item))


class CartScreen(BaseScreen):
    """
    cart lines with quantity controls, plus the way into checkout
    """

    def __init__(self) -> None:
        super().__init__()

    def compose(self) -> ComposeResult:
        lang = self.app.state.lang
        yield from super().compose()
        yield VerticalScroll(id="vertscroll-content")
        yield Label("", id="label-cart-total")
        yield Rule(line_style="dashed")
        with Horizontal(id="hort-buttons"):
            yield Button(pick("إفراغ السلة", "Clear Cart", lang), id="btn-clear-cart")
            yield Button(
                pick("إتمام الطلب", "Checkout", lang), id="btn-checkout", variant="primary"
            )

    async def on_mount(self):
        self.handle_cart_change()

    def on_lang_changed(self) -> None:
        lang = self.app.state.lang
        self.query_one("#btn-clear-cart", Button).label = pick(
            "إفراغ السلة", "Clear Cart", lang
        )
        self.query_one("#btn-checkout", Button).label = pick(
            "إتمام الطلب", "Checkout", lang
        )
        self.handle_cart_change()

    @on(CartChangedMessage)
    @on(ScreenResume)
    @work(exclusive=True)  # exclusive, else two refreshes mount duplicate rows
    async def handle_cart_change(self):
        lang = self.app.state.lang
        cart = self.app.state.cart

        content = self.query_one("#vertscroll-content")
        await content.remove_children()
        await content.mount_all([CartItemWidget(item, lang) for item in cart.items])

        if cart.is_empty():
            content.add_class("no-items")
        else:
            content.remove_class("no-items")

        self.query_one("#label-cart-total", Label).update(
            pick("المجموع الفرعي", "Subtotal", lang) + f": {format_money(cart.subtotal)}"
        )
        await self.refresh_sidebar()

    @on(CartItemQtyMessage)
    def handle_qty(self, message: CartItemQtyMessage) -> None:
        item = message.item
        self.app.state.cart.update_quantity(item.product_id, message.delta, item.color_id)
        self.post_message(CartChangedMessage())

    @on(CartItemRemoveMessage)
    @work()
    async def handle_remove_item(self, message: CartItemRemoveMessage):
        lang = self.app.state.lang
        if await self.app.push_screen_wait(
            DialogModal(
                pick("هل تريد حذف هذا المنتج من السلة؟", "Remove this item from cart?", lang),
                primary_text=pick("نعم", "Yes", lang),
                secondary_text=pick("لا", "No", lang),
                tone="warning",
            )
        ):
            item = message.item
            self.app.state.cart.remove(item.product_id, item.color_id)
            self.post_message(CartChangedMessage())
            self.notify(pick("تم الحذف", "Item removed from cart.", lang))

    @on(Button.Pressed, "#btn-clear-cart")
    @work()
    async def handle_clear_cart(self) -> None:
        lang = self.app.state.lang
        if self.app.state.cart.is_empty():
            self.app.notify(pick("السلة فارغة.", "Cart is empty.", lang), severity="warning")
            return

        if await self.app.push_screen_wait(
            DialogModal(
                pick("هل تريد إفراغ السلة؟", "Remove all items from cart?", lang),
                primary_text=pick("نعم", "Yes", lang),
                secondary_text=pick("لا", "No", lang),
                tone="error",
            )
        ):
            self.app.state.cart.clear()
            self.post_message(CartChangedMessage())

    @on(Button.Pressed, "#btn-checkout")
    @work()
    async def handle_checkout(self) -> None:
        lang = self.app.state.lang
        if self.app.state.cart.is_empty():
            self.app.notify(pick("السلة فارغة.", "Cart is empty.", lang), severity="warning")
            return

        await self.app.push_screen_wait(CheckoutModal())
        self.post_message(CartChangedMessage())
