from datetime import datetime, timezone

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Vertical
from textual.events import ScreenResume
from textual.widgets import Button, Input, Label

from db import crud
from shop.errors import OrderValidationError, PersistenceError, StoreError
from shop.identity import complete_profile
from utils.i18n import pick
from utils.messages import ModeSwitchedMessage, PersistenceErrorMessage
from views.base_screen import BaseScreen

# input id for each field a validation error can point at
_FIELD_INPUTS = {
    "phone": "#input-profile-phone",
    "address": "#input-profile-address",
}


class ProfileScreen(BaseScreen):
    """Signed-in users keep the phone and address used for delivery here."""

    def compose(self) -> ComposeResult:
        lang = self.app.state.lang
        yield from super().compose()
        with Vertical(id="div-profile"):
            yield Label("", id="label-profile-hint")
            yield Label(pick("الاسم الكامل", "Full name", lang))
            yield Input(placeholder="Jane Doe", id="input-profile-name")
            yield Label(pick("رقم الهاتف (مع رمز الدولة)", "Phone (with country code)", lang))
            yield Input(placeholder="+15125550100", id="input-profile-phone")
            yield Label(pick("عنوان التوصيل بالتفصيل", "Detailed delivery address", lang))
            yield Input(
                placeholder=pick(
                    "المدينة، الحي، اسم الشارع، رقم المبنى...",
                    "City, street, building number...",
                    lang,
                ),
                id="input-profile-address",
            )
            yield Button(
                pick("حفظ والمتابعة", "Save and continue", lang),
                id="btn-save-profile",
                variant="primary",
            )

    async def on_mount(self) -> None:
        await self.load_profile()

    @on(ScreenResume)
    async def load_profile(self) -> None:
        state = self.app.state
        signed_in = state.role != "guest"
        for widget in self.query("#div-profile Input, #div-profile Button"):
            widget.disabled = not signed_in
        self.render_hint()
        if not signed_in:
            return

        profile = await crud.get_profile(state.backend.db, state.uid)
        name = (profile and profile.full_name) or state.session.display_name or ""
        phone = (profile and profile.phone) or state.session.phone or ""
        self.query_one("#input-profile-name", Input).value = name
        self.query_one("#input-profile-phone", Input).value = phone
        self.query_one("#input-profile-address", Input).value = (
            profile.address if profile else ""
        )

    @on(Button.Pressed, "#btn-save-profile")
    @work(exclusive=True)
    async def handle_save(self) -> None:
        state = self.app.state
        lang = state.lang
        btn = self.query_one("#btn-save-profile", Button)
        for selector in _FIELD_INPUTS.values():
            self.query_one(selector).remove_class("-invalid")

        btn.loading = True
        try:
            session = await complete_profile(
                state.backend.db,
                state.session,
                self.query_one("#input-profile-phone", Input).value,
                self.query_one("#input-profile-address", Input).value,
                datetime.now(timezone.utc),
                full_name=self.query_one("#input-profile-name", Input).value,
            )
        except OrderValidationError as e:
            self.notify(e.localized(lang), severity="error")
            selector = _FIELD_INPUTS.get(e.field)
            if selector:
                self.query_one(selector).add_class("-invalid")
            return
        except PersistenceError as e:
            self.app.post_message(PersistenceErrorMessage(e))
            return
        except StoreError as e:
            # phone held by another account, or no longer signed in
            self.notify(e.localized(lang), severity="error")
            self.query_one("#input-profile-phone").add_class("-invalid")
            return
        finally:
            btn.loading = False

        state.session = session
        self.notify(pick("تم تحديث بيانات التوصيل بنجاح.", "Delivery details saved.", lang))
        await self.refresh_sidebar()
        self.app.post_message(ModeSwitchedMessage(self.app.current_mode, "catalog"))
        await self.app.switch_mode("catalog")

    def render_hint(self) -> None:
        lang = self.app.state.lang
        hint = self.query_one("#label-profile-hint", Label)
        if self.app.state.role == "guest":
            hint.update(pick("سجل الدخول لحفظ بياناتك.", "Log in to save your details.", lang))
        else:
            hint.update(
                pick(
                    "نحتاج هذه البيانات لتسهيل عملية التوصيل لك.",
                    "We use these details to deliver your orders.",
                    lang,
                )
            )

    def on_lang_changed(self) -> None:
        self.render_hint()
        self.query_one("#btn-save-profile", Button).label = pick(
            "حفظ والمتابعة", "Save and continue", self.app.state.lang
        )
