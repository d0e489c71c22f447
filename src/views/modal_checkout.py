from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Button, Checkbox, Input, Label, MarkdownViewer, Select

from db import crud
from shop.checkout import CheckoutDraft, place_order
from shop.errors import OrderValidationError, PersistenceError, VerificationError
from shop.pricing import compute_totals
from shop.shipping import load_rate_table
from utils.i18n import pick, t
from utils.logger import get_logger
from utils.messages import CartChangedMessage, NewOrderMessage, PersistenceErrorMessage
from utils.pure import format_money, generate_markdown_table
from views.modal_dialog import OrderPlacedModal

_logger = get_logger(__name__)

# input id for each field a validation error can point at
_FIELD_INPUTS = {
    "full_name": "#input-full-name",
    "phone": "#input-phone-number",
    "address": "#input-address-line",
    "phone_unverified": "#input-phone-code",
}


class CheckoutModal(ModalScreen[bool]):
    """
    Checkout form: customer details, phone verification, region and terms,
    with a live order summary. Returns True once an order is placed.
    """

    def __init__(self):
        super().__init__()
        self._rates = {}

    def compose(self) -> ComposeResult:
        lang = self.app.state.lang
        with Horizontal(id="hort-checkout"):
            yield MarkdownViewer("", show_table_of_contents=False)
            with VerticalScroll(id="vert-checkout-form"):
                yield Label(pick("الاسم الكامل", "Full name", lang))
                yield Input(placeholder="Jane Doe", id="input-full-name")

                yield Label(pick("رقم الهاتف", "Phone", lang))
                with Horizontal(id="hort-phone"):
                    yield Input(value="+1", id="input-phone-cc")
                    yield Input(placeholder="512 555 0100", id="input-phone-number")
                    yield Button(pick("إرسال الكود", "Send code", lang), id="btn-send-code")
                with Horizontal(id="hort-code"):
                    yield Input(placeholder="123456", id="input-phone-code", disabled=True)
                    yield Button(
                        pick("تأكيد", "Verify", lang),
                        id="btn-verify-code",
                        variant="success",
                        disabled=True,
                    )
                yield Label("", id="label-phone-status")

                yield Label(pick("الولاية", "State", lang))
                yield Select([], id="select-region", prompt=pick("اختر", "Choose", lang))
                yield Label(pick("العنوان", "Address", lang))
                yield Input(
                    placeholder="123 Main St, Anytown, ST 00000",
                    id="input-address-line",
                )
                yield Checkbox(
                    pick(
                        "أوافق على الشروط وسياسة الخصوصية",
                        "I agree to the terms and privacy policy",
                        lang,
                    ),
                    id="checkbox-terms",
                )
                with Vertical(id="vert-checkout-btns"):
                    yield Button(pick("رجوع", "Go Back", lang), id="btn-quit")
                    yield Button(
                        pick("تأكيد الطلب", "Place Order", lang),
                        id="btn-submit",
                        variant="primary",
                    )

    async def on_mount(self):
        state = self.app.state
        self._rates = await load_rate_table(state.backend.db)
        self.query_one("#select-region", Select).set_options(
            [(region, region) for region in sorted(self._rates)]
        )

        profile = await crud.get_profile(state.backend.db, state.uid) if state.uid else None
        profile_name = (profile and profile.full_name) or (
            state.session.display_name if state.session else ""
        )
        if profile_name:
            self.query_one("#input-full-name", Input).value = profile_name
        if profile and profile.address:
            self.query_one("#input-address-line", Input).value = profile.address
        self.render_phone_status()
        await self.update_summary()
        self.query_one("#input-full-name").focus()

    def _region(self) -> str:
        value = self.query_one("#select-region", Select).value
        return value if isinstance(value, str) else ""

    async def update_summary(self) -> None:
        lang = self.app.state.lang
        cart = self.app.state.cart
        region = self._region()
        totals = compute_totals(cart.items, region, self._rates)

        headers = [
            pick("المنتج", "Product", lang),
            pick("السعر", "Unit Price", lang),
            pick("الكمية", "Quantity", lang),
            pick("المجموع", "Total", lang),
        ]
        rows = [
            [
                pick(item.name, item.name_en, lang),
                format_money(item.price),
                item.quantity,
                format_money(item.price * item.quantity),
            ]
            for item in cart.items
        ]
        md = f"### {pick('ملخص الطلب', 'Order Summary', lang)}\n\n"
        md += generate_markdown_table(headers, rows, ["l", "c", "c", "c"])
        md += f"\n\n**{pick('المجموع الفرعي', 'Subtotal', lang)}:** {format_money(totals.subtotal)}"
        md += f"\n\n**{pick('الشحن', 'Shipping', lang)}:** {format_money(totals.shipping_fee)}"
        if region:
            md += f" ({region})"
        md += f"\n\n**{pick('الإجمالي', 'Total', lang)}:** {format_money(totals.grand_total)}"
        md += f"\n\n{pick('الدفع عند الاستلام', 'Cash on Delivery', lang)}"
        await self.query_one(MarkdownViewer).document.update(md)

    @on(Select.Changed, "#select-region")
    async def handle_region_changed(self) -> None:
        await self.update_summary()

    def render_phone_status(self) -> None:
        gate = self.app.state.gate
        lang = self.app.state.lang
        label = self.query_one("#label-phone-status", Label)
        if gate.is_verified:
            label.update(f"✓ {t('verification.verified', lang)} {gate.verified_phone}")
            for widget_id in (
                "#input-phone-cc",
                "#input-phone-number",
                "#btn-send-code",
                "#input-phone-code",
                "#btn-verify-code",
            ):
                self.query_one(widget_id).disabled = True
            self.query_one("#input-phone-number", Input).value = gate.verified_phone
        elif gate.pending_phone:
            label.update(f"{t('verification.code_sent', lang)} {gate.pending_phone}")
        else:
            label.update("")

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(False)

    @on(Button.Pressed, "#btn-send-code")
    @work(exclusive=True, group="phone")
    async def handle_send_code(self) -> None:
        lang = self.app.state.lang
        btn = self.query_one("#btn-send-code", Button)
        btn.disabled = True
        try:
            await self.app.state.gate.request_code(
                self.query_one("#input-phone-cc", Input).value,
                self.query_one("#input-phone-number", Input).value,
            )
        except VerificationError as e:
            self.notify(e.localized(lang), severity="error")
            self.render_phone_status()
            return
        finally:
            btn.disabled = False

        self.query_one("#input-phone-code", Input).disabled = False
        self.query_one("#btn-verify-code", Button).disabled = False
        self.query_one("#input-phone-code").focus()
        self.render_phone_status()

    @on(Button.Pressed, "#btn-verify-code")
    @work(exclusive=True, group="phone")
    async def handle_verify_code(self) -> None:
        lang = self.app.state.lang
        code_input = self.query_one("#input-phone-code", Input)
        try:
            await self.app.state.gate.confirm_code(code_input.value)
        except VerificationError as e:
            self.notify(e.localized(lang), severity="error")
            code_input.add_class("-invalid")
            if self.app.state.gate.pending_phone is None:
                code_input.disabled = True
                self.query_one("#btn-verify-code", Button).disabled = True
                self.render_phone_status()
            return

        code_input.remove_class("-invalid")
        await self.app.state.sign_in_with_verified_phone()
        self.app.post_message(CartChangedMessage())
        self.render_phone_status()

    def _draft(self) -> CheckoutDraft:
        gate = self.app.state.gate
        phone = gate.verified_phone if gate.is_verified else ""
        if not phone:
            phone = self.query_one("#input-phone-number", Input).value
        return CheckoutDraft(
            full_name=self.query_one("#input-full-name", Input).value,
            phone=phone,
            region=self._region(),
            address=self.query_one("#input-address-line", Input).value,
            terms_agreed=self.query_one("#checkbox-terms", Checkbox).value,
        )

    @on(Button.Pressed, "#btn-submit")
    @work(exclusive=True)
    async def handle_submit(self):
        state = self.app.state
        lang = state.lang
        btn = self.query_one("#btn-submit", Button)
        btn.disabled = True
        btn.loading = True
        try:
            order = await place_order(
                state.backend, state.session, state.cart, self._draft(), state.gate, lang
            )
        except OrderValidationError as e:
            self.notify(e.localized(lang), severity="error")
            selector = _FIELD_INPUTS.get(e.field)
            if selector:
                self.query_one(selector).add_class("-invalid")
            return
        except PersistenceError as e:
            # the cart is left as it was so the shopper can retry
            self.app.post_message(PersistenceErrorMessage(e))
            return
        finally:
            btn.disabled = False
            btn.loading = False

        self.app.post_message(NewOrderMessage(order.id))
        self.app.post_message(CartChangedMessage())
        await self.app.push_screen_wait(OrderPlacedModal(order, lang))
        self.dismiss(True)

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(False)
