from typing import Dict, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.validation import Number
from textual.widgets import Button, Input, Label, MarkdownViewer, OptionList

from shop.admin import update_shipping_rates
from shop.errors import PersistenceError, StoreError
from shop.shipping import DEFAULT_SHIPPING_RATES, load_rate_table, parse_rate
from utils.i18n import pick
from utils.messages import PersistenceErrorMessage
from utils.pure import format_money, generate_markdown_table
from views.base_screen import BaseScreen


class AdminShippingScreen(BaseScreen):
    """
    Admin picks a state and sets its shipping fee. Saving writes the whole
    table, so states never edited keep their default fee.
    """

    current_region: Optional[str] = None

    def __init__(self) -> None:
        super().__init__()
        self._rates: Dict[str, float] = {}

    def compose(self) -> ComposeResult:
        lang = self.app.state.lang
        yield from super().compose()
        with Vertical():
            yield Input(
                id="input-search", placeholder=pick("ابحث عن ولاية...", "Search for a state...", lang)
            )
            yield OptionList(id="optlist-regions")
            yield MarkdownViewer(id="md-region", show_table_of_contents=False)
            with Horizontal(id="hort-controls"):
                with Vertical():
                    yield Label(pick("رسوم الشحن ($):", "Shipping fee ($):", lang))
                    yield Input(
                        id="input-fee",
                        type="number",
                        validators=[Number(minimum=0.0)],
                    )
                yield Button(pick("حفظ", "Save", lang), id="btn-update", variant="success")

    async def on_mount(self) -> None:
        self.query_one("#md-region").add_class("hidden")
        self.query_one("#hort-controls").add_class("hidden")
        await self.reload_rates()
        self.query_one("#input-search", Input).focus()

    @on(ScreenResume)
    async def reload_rates(self) -> None:
        self._rates = await load_rate_table(self.app.state.backend.db)
        self.update_optlist(self.query_one("#input-search", Input).value)

    def on_input_changed(self, message: Input.Changed) -> None:
        if message.input.id == "input-search":
            self.query_one("#optlist-regions").remove_class("hidden")
            self.update_optlist(message.value)

    def on_option_list_option_selected(self, message: OptionList.OptionSelected):
        self.current_region = message.option.id
        self.render_region()

        self.query_one("#md-region").remove_class("hidden")
        self.query_one("#hort-controls").remove_class("hidden")
        self.query_one("#input-fee", Input).focus()

    def update_optlist(self, query: str) -> None:
        phrase = (query or "").strip().lower()
        opt_list = self.query_one("#optlist-regions", OptionList)
        opt_list.clear_options()
        opt_list.add_options(
            [
                (f"{region}  {format_money(fee)}", region)
                for region, fee in sorted(self._rates.items())
                if phrase in region.lower()
            ]
        )

    def render_region(self) -> None:
        lang = self.app.state.lang
        region = self.current_region
        fee = self._rates.get(region, 0.0)
        default = DEFAULT_SHIPPING_RATES.get(region)
        rows = [
            [pick("الولاية", "State", lang), region],
            [pick("الرسوم الحالية", "Current fee", lang), format_money(fee)],
            [
                pick("الرسوم الافتراضية", "Default fee", lang),
                format_money(default) if default is not None else "-",
            ],
        ]
        md_table = generate_markdown_table(
            [pick("الخاصية", "Attribute", lang), pick("القيمة", "Value", lang)], rows, ["l", "l"]
        )
        self.query_one("#md-region", MarkdownViewer).document.update(
            f"### {region}\n\n" + md_table
        )
        self.query_one("#input-fee", Input).value = f"{fee:.2f}"

    @on(Button.Pressed, "#btn-update")
    @work(exclusive=True)
    async def handle_update(self) -> None:
        state = self.app.state
        lang = state.lang
        if self.current_region is None:
            return

        new_fee = parse_rate(self.query_one("#input-fee", Input).value)
        if new_fee == self._rates.get(self.current_region):
            self.notify(pick("لا يوجد تغيير.", "Nothing to update.", lang), severity="warning")
            return

        rates = dict(self._rates)
        rates[self.current_region] = new_fee
        try:
            await update_shipping_rates(state.backend, state.session, rates)
        except PersistenceError as e:
            self.app.post_message(PersistenceErrorMessage(e))
            return
        except StoreError as e:
            self.notify(e.localized(lang), severity="error")
            return

        self._rates = rates
        self.notify(pick("تم حفظ رسوم الشحن", "Shipping rates saved.", lang))
        self.render_region()
        self.update_optlist(self.query_one("#input-search", Input).value)
