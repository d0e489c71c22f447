from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import LoadingIndicator

from shop.backend import Backend
from shop.cart import Cart
from utils.config import Settings, load_settings
from utils.i18n import t
from utils.logger import get_logger
from utils.messages import (
    CartChangedMessage,
    ModeSwitchedMessage,
    PersistenceErrorMessage,
    QuitRequestedMessage,
    UserLogoutMessage,
)
from utils.state import GlobalState
from views.base_screen import BaseScreen
from views.scr_admin_orders import AdminOrdersScreen
from views.scr_admin_shipping import AdminShippingScreen
from views.scr_cart import CartScreen
from views.scr_catalog import CatalogScreen
from views.scr_login import LoginScreen
from views.scr_past_orders import PastOrdersScreen
from views.scr_profile import ProfileScreen

_logger = get_logger(__name__)


class StorefrontApp(App):
    BINDINGS = [
        Binding("ctrl+t", "switch_light", "Toggle Theme", show=True),
    ]

    MODES = {
        "catalog": CatalogScreen,
        "cart": CartScreen,
        "past_orders": PastOrdersScreen,
        "profile": ProfileScreen,
        "admin_orders": AdminOrdersScreen,
        "admin_shipping": AdminShippingScreen,
    }

    # (arabic, english) menu labels
    CUSTOMER_MODES = {
        "catalog": ("المتجر", "Shop"),
        "cart": ("السلة", "Cart"),
        "past_orders": ("طلباتي", "My Orders"),
        "profile": ("ملفي", "My Profile"),
    }
    ADMIN_MODES = {
        "admin_orders": ("إدارة الطلبات", "Manage Orders"),
        "admin_shipping": ("أسعار الشحن", "Shipping Rates"),
    }

    CSS_PATH = "views/styles/app.tcss"

    state: GlobalState

    def __init__(self, settings: Settings = None, backend: Backend = None):
        super().__init__()
        settings = settings or load_settings()
        backend = backend or Backend(settings)
        cart = Cart(settings.cart_path).load()
        self.state = GlobalState(backend=backend, cart=cart, lang=settings.lang)

    def compose(self) -> ComposeResult:
        yield LoadingIndicator()

    async def on_mount(self) -> None:
        self.main_flow()

    def action_switch_light(self):
        if self.theme == "textual-dark":
            self.theme = "solarized-light"
        else:
            self.theme = "textual-dark"
        self.notify(f"Theme changed to {self.theme}")

    @on(UserLogoutMessage)
    @work
    async def handle_user_logout(self):
        was_signed_in = self.state.role != "guest"
        await self.state.sign_out()
        if was_signed_in:
            self.notify("Logout successful.")
        self.main_flow()

    @on(PersistenceErrorMessage)
    def handle_persistence_error(self, message: PersistenceErrorMessage) -> None:
        error = message.error
        _logger.error(f"{error} {error.context()}")
        self.notify(t(error.key, self.state.lang), severity="error", timeout=8)

    @on(CartChangedMessage)
    async def handle_cart_changed(self) -> None:
        # screens outside the active mode pick the change up on resume
        for screen in self.screen_stack:
            if isinstance(screen, BaseScreen):
                await screen.refresh_sidebar()

    @on(QuitRequestedMessage)
    @work
    async def handle_quit(self):
        await self.state.backend.aclose()
        self.exit()

    @work
    async def main_flow(self):
        await self.push_screen_wait(LoginScreen())
        target = "admin_orders" if self.state.role == "admin" else "catalog"
        self.post_message(ModeSwitchedMessage(self.current_mode, target))
        await self.switch_mode(target)


def main() -> None:
    app = StorefrontApp()
    app.run()


if __name__ == "__main__":
    main()
