from typing import Dict, Literal, Tuple

from textual.app import ComposeResult
from textual.containers import Container, Horizontal
from textual.screen import ModalScreen
from textual.widgets import Button, Label, Markdown

from db.models import Order
from utils.i18n import pick, t
from utils.messages import QuitRequestedMessage
from utils.pure import format_money


class DialogModal(ModalScreen[bool]):
    """
    Yes/no (or OK-only) dialog. Dismisses with True for the primary button.
    """

    VARIANT_MAP: Dict[
        str, Tuple[Literal["primary", "default", "success", "warning", "error"], str]
    ] = {
        "default": ("primary", "default"),
        "positive": ("success", "default"),
        "warning": ("warning", "default"),
        "error": ("error", "primary"),
    }

    def __init__(
        self,
        caption: str,
        primary_text: str = "OK",
        secondary_text: str = "",
        tone: Literal["default", "positive", "warning", "error"] = "default",
    ):
        super().__init__()
        self.caption = caption
        self.primary_text = primary_text
        self.secondary_text = secondary_text
        self.tone = tone

    def compose(self) -> ComposeResult:
        with Container(id="div-dialog"):
            yield Label(self.caption, id="caption")
            with Horizontal(id="dialog"):
                if self.secondary_text:
                    yield Button(
                        self.secondary_text,
                        variant=DialogModal.VARIANT_MAP[self.tone][1],
                        id="btn-secondary",
                    )
                yield Button(
                    self.primary_text,
                    variant=DialogModal.VARIANT_MAP[self.tone][0],
                    id="btn-primary",
                )

    def on_mount(self):
        # destructive dialogs focus the safe choice
        if self.secondary_text and self.tone == "error":
            self.query_one("#btn-secondary").focus()
        else:
            self.query_one("#btn-primary").focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "btn-primary")


class QuitDialogModal(DialogModal):
    def __init__(self, lang: str = "ar"):
        super().__init__(
            pick("هل تريد الخروج من المتجر؟", "Are you sure you want to quit?", lang),
            pick("نعم", "Yes", lang),
            pick("لا", "No", lang),
            "error",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "btn-primary":
            self.post_message(QuitRequestedMessage())
        super().on_button_pressed(event)


class OrderPlacedModal(ModalScreen[None]):
    """Success screen shown once the order document is written."""

    def __init__(self, order: Order, lang: str = "ar"):
        super().__init__()
        self.order = order
        self.lang = lang

    def compose(self) -> ComposeResult:
        lang = self.lang
        md = (
            f"### {pick('شكراً لك', 'Thank You', lang)}\n\n"
            f"{t('order.placed', lang)}\n\n"
            f"- {pick('رقم الطلب', 'Order number', lang)}: `{self.order.id}`\n"
            f"- {pick('الإجمالي', 'Total', lang)}: {format_money(self.order.total_price)}\n"
            f"- {pick('طريقة الدفع', 'Payment', lang)}: "
            f"{pick('الدفع عند الاستلام', 'Cash on Delivery', lang)}\n"
        )
        with Container(id="div-dialog"):
            yield Markdown(md)
            with Horizontal(id="dialog"):
                yield Button(
                    pick("متابعة التسوق", "Continue shopping", lang),
                    variant="success",
                    id="btn-primary",
                )

    def on_mount(self):
        self.query_one("#btn-primary").focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(None)
