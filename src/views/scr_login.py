import uuid
from datetime import datetime, timezone

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import Key
from textual.widgets import Button, Input, Label, TabbedContent, TabPane

from shop.errors import PhoneAlreadyRegisteredError, VerificationError
from shop.identity import login_email_user, register_email_user
from utils.i18n import pick, t
from utils.logger import get_logger
from utils.messages import UserLoginMessage
from views.base_screen import BaseScreen
from views.modal_dialog import QuitDialogModal

_logger = get_logger(__name__)


class LoginScreen(BaseScreen):
    """
    Sign in with a phone code or email/password, or continue as a guest.
    Dismisses once the session is settled.
    """

    def __init__(self):
        super().__init__()
        self.configure(header_sub_title="Login", show_sidebar=False)

    def compose(self) -> ComposeResult:
        lang = self.app.state.lang
        yield from super().compose()
        with TabbedContent(id="super-tab-loginscr"):
            with TabPane(pick("الهاتف", "Phone", lang), id="tab-phone"):
                with Vertical(id="div-phone"):
                    yield Label(pick("رقم الهاتف (مع رمز الدولة)", "Phone (with country code)", lang))
                    with Horizontal():
                        yield Input(value="+1", id="input-phone-cc")
                        yield Input(placeholder="512 555 0100", id="input-phone-number")
                    yield Button(
                        pick("إرسال الكود", "Send code", lang),
                        id="btn-send-code",
                        variant="primary",
                    )
                    yield Label(pick("كود التحقق", "Verification code", lang))
                    yield Input(placeholder="123456", id="input-phone-code", disabled=True)
                    yield Button(
                        pick("تأكيد", "Verify", lang),
                        id="btn-verify-code",
                        variant="success",
                        disabled=True,
                    )

            with TabPane(pick("البريد الإلكتروني", "Email", lang), id="tab-login"):
                with Vertical(id="div-login"):
                    yield Label(pick("البريد الإلكتروني", "Email", lang))
                    yield Input(placeholder="user@example.com", id="input-login-email")
                    yield Label(pick("كلمة المرور", "Password", lang))
                    yield Input(placeholder="*********", password=True, id="input-login-pwd")
                    yield Button(pick("دخول", "Login", lang), id="btn-login", variant="primary")

            with TabPane(pick("حساب جديد", "Sign up", lang), id="tab-signup"):
                with Vertical(id="div-reg"):
                    yield Label(pick("الاسم الكامل", "Full name", lang))
                    yield Input(placeholder="Jane Doe", id="input-reg-name")
                    yield Label(pick("البريد الإلكتروني", "Email", lang))
                    yield Input(placeholder="user@example.com", id="input-reg-email")
                    yield Label(pick("رقم الهاتف", "Phone", lang))
                    yield Input(placeholder="+15125550100", id="input-reg-phone")
                    yield Label(pick("كلمة المرور", "Password", lang))
                    yield Input(placeholder="*********", password=True, id="input-reg-pwd")
                    yield Button(pick("تسجيل", "Register", lang), id="btn-reg", variant="primary")

        with Horizontal(id="div-login-btns"):
            yield Button(pick("خروج", "Quit", lang), id="btn-quit")
            yield Button(pick("المتابعة كزائر", "Continue as guest", lang), id="btn-guest")

    def on_mount(self):
        self.query_one("#input-phone-number").focus()

    def on_key(self, event: Key) -> None:
        if event.key != "enter":
            return
        if self.focused == self.query_one("#input-login-pwd"):
            self.handle_login_submit()
        elif self.focused == self.query_one("#input-reg-pwd"):
            self.handle_registration_submit()
        elif self.focused == self.query_one("#input-phone-code"):
            self.handle_verify_code()

    def _finish(self) -> None:
        self.app.post_message(UserLoginMessage())
        self.dismiss()

    # ---------------------------
    # Phone code
    # ---------------------------

    @on(Button.Pressed, "#btn-send-code")
    @work(exclusive=True, group="phone")
    async def handle_send_code(self) -> None:
        lang = self.app.state.lang
        cc = self.query_one("#input-phone-cc", Input).value
        number = self.query_one("#input-phone-number", Input).value
        btn = self.query_one("#btn-send-code", Button)
        btn.disabled = True
        try:
            await self.app.state.gate.request_code(cc, number)
        except VerificationError as e:
            self.notify(e.localized(lang), severity="error")
            return
        finally:
            btn.disabled = False

        self.notify(t("verification.code_sent", lang))
        code_input = self.query_one("#input-phone-code", Input)
        code_input.disabled = False
        self.query_one("#btn-verify-code", Button).disabled = False
        code_input.focus()

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
                # challenge burned; only a new code can help now
                code_input.disabled = True
                self.query_one("#btn-verify-code", Button).disabled = True
            else:
                code_input.focus()
            return

        session = await self.app.state.sign_in_with_verified_phone()
        self.notify(f"{t('verification.verified', lang)} {session.phone}")
        self._finish()

    # ---------------------------
    # Email
    # ---------------------------

    @on(Button.Pressed, "#btn-login")
    @work(exclusive=True)
    async def handle_login_submit(self) -> None:
        lang = self.app.state.lang
        email = self.query_one("#input-login-email", Input).value.strip()
        pwd = self.query_one("#input-login-pwd", Input).value

        if not email or not pwd:
            self.notify(
                pick("يرجى إكمال جميع الحقول.", "Email and password are required.", lang),
                severity="error",
            )
            return

        session = await login_email_user(self.app.state.backend.db, email, pwd)
        if session:
            self.app.state.sign_in(session)
            self.notify(pick("أهلاً بك", "Welcome", lang) + f" {session.display_name or email}")
            self._finish()
        else:
            self.notify(
                pick("بيانات الدخول غير صحيحة.", "Invalid email or password.", lang),
                severity="error",
            )
            input_login_pwd = self.query_one("#input-login-pwd", Input)
            input_login_pwd.value = ""
            input_login_pwd.focus()
            input_login_pwd.add_class("-invalid")

    @on(Button.Pressed, "#btn-reg")
    @work(exclusive=True)
    async def handle_registration_submit(self) -> None:
        lang = self.app.state.lang
        name = self.query_one("#input-reg-name", Input).value.strip()
        email = self.query_one("#input-reg-email", Input).value.strip()
        phone = self.query_one("#input-reg-phone", Input).value.strip()
        pwd = self.query_one("#input-reg-pwd", Input).value

        if not name or not email or not pwd or not phone:
            self.notify(
                pick("يرجى إكمال جميع الحقول.", "Make sure all inputs are filled.", lang),
                severity="error",
            )
            return
        if "@" not in email or "." not in email.rsplit("@", 1)[-1]:
            self.notify(
                pick("البريد الإلكتروني غير صحيح.", "The email address is invalid.", lang),
                severity="error",
            )
            return
        if len(pwd) < 6:
            self.notify(
                pick(
                    "كلمة المرور يجب أن تكون 6 أحرف على الأقل.",
                    "Password must be at least 6 characters.",
                    lang,
                ),
                severity="error",
            )
            return

        try:
            await register_email_user(
                self.app.state.backend.db,
                uuid.uuid4().hex,
                name,
                email,
                pwd,
                phone,
                datetime.now(timezone.utc),
            )
        except PhoneAlreadyRegisteredError as e:
            self.notify(e.localized(lang), severity="error")
            return
        except ValueError:
            self.notify(
                pick("هذا البريد الإلكتروني مسجل مسبقاً.", "Email already taken.", lang),
                severity="error",
            )
            return

        self.get_child_by_type(TabbedContent).active = "tab-login"
        self.query_one("#input-login-email", Input).value = email
        input_login_pwd = self.query_one("#input-login-pwd", Input)
        input_login_pwd.value = pwd
        input_login_pwd.focus()
        self.notify(pick("تم التسجيل بنجاح", "Registration successful.", lang))

    @on(Button.Pressed, "#btn-guest")
    def handle_guest(self) -> None:
        _logger.debug("Continuing as guest")
        self._finish()

    @on(Button.Pressed, "#btn-quit")
    def handle_quit_(self) -> None:
        self.app.push_screen(QuitDialogModal(self.app.state.lang))
