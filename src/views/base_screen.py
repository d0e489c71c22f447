from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.screen import Screen
from textual.widgets import Button, Footer, Header, Label, ListItem, ListView, Markdown

from utils.i18n import pick
from utils.messages import ModeSwitchedMessage, UserLoginMessage, UserLogoutMessage
from utils.pure import generate_markdown_table
from views.modal_dialog import DialogModal, QuitDialogModal


class Sidebar(Container):
    init_mode = ""

    def compose(self) -> ComposeResult:
        yield Label("", id="label-info-1")
        yield Markdown("", id="md-userinfo")
        yield Button("", id="btn-logout", variant="error")
        yield Label("", id="label-info-2")
        yield ListView(id="list-menu")

    async def on_mount(self):
        self.init_mode = self.app.current_mode
        await self.render_user()

    async def render_user(self) -> None:
        state = self.app.state
        lang = state.lang

        self.query_one("#label-info-1", Label).update(pick("الحساب", "Account", lang))
        self.query_one("#label-info-2", Label).update(pick("القائمة", "Menu", lang))
        self.query_one("#btn-logout", Button).label = (
            pick("تسجيل الدخول", "Login", lang)
            if state.role == "guest"
            else pick("تسجيل الخروج", "Logout", lang)
        )

        role_label = {
            "guest": pick("زائر", "Guest", lang),
            "customer": pick("عميل", "Customer", lang),
            "admin": pick("المشرف", "Admin", lang),
        }[state.role]
        session = state.session
        table_rows = [
            [pick("الاسم", "Name", lang), (session and session.display_name) or "-"],
            [pick("الهاتف", "Phone", lang), (session and session.phone) or "-"],
            [pick("الدور", "Role", lang), role_label],
            [pick("السلة", "Cart", lang), state.cart.total_items],
        ]
        md_table_str = generate_markdown_table(None, table_rows, ["l", "l"])
        await self.query_one(Markdown).update(md_table_str)

        modes = dict(self.app.CUSTOMER_MODES)
        if state.role == "admin":
            modes.update(self.app.ADMIN_MODES)
        list_menu: ListView = self.query_one("#list-menu")
        await list_menu.clear()
        await list_menu.extend(
            [
                ListItem(Label(pick(*v, lang)), id="list-menu-item-" + k)
                for k, v in modes.items()
            ]
        )
        self.highlight_item(self.init_mode)

    async def on_list_view_selected(self, event: ListView.Selected):
        selected_mode = event.item.id.removeprefix("list-menu-item-")
        self.highlight_item(self.init_mode)
        if self.app.current_mode != selected_mode:
            self.app.post_message(
                ModeSwitchedMessage(self.app.current_mode, selected_mode)
            )
            await self.app.switch_mode(selected_mode)

    @on(Button.Pressed, "#btn-logout")
    @work()
    async def handle_logout(self):
        lang = self.app.state.lang
        if self.app.state.role != "guest" and not await self.app.push_screen_wait(
            DialogModal(
                pick("هل تريد تسجيل الخروج؟", "Are you sure you want to log out?", lang),
                primary_text=pick("نعم", "Yes", lang),
                secondary_text=pick("لا", "No", lang),
                tone="warning",
            )
        ):
            return

        self.post_message(UserLogoutMessage())

    def highlight_item(self, mode_str: str):
        list_menu = self.query_one("#list-menu")
        for item in list_menu.children:
            item.highlighted = item.id == "list-menu-item-" + mode_str


class BaseScreen(Screen):
    """
    Inherited by all screens, contains common elements like
    headers, footers, sidebar, and keybindings.
    """

    BINDINGS = [
        Binding("ctrl+z", "quit", "Quit", show=True),
        Binding("ctrl+l", "toggle_lang", "عربي / EN", show=True),
    ]

    def __init__(self):
        super().__init__()

        self.configure()

    def configure(
        self,
        header_sub_title: str = "",
        show_sidebar: bool = True,
    ) -> None:
        """
        configure behavior of the base screen
        """
        lang = self.app.state.lang
        self.app.title = pick("متجر بوتيك", "Boutique Store", lang)
        self.sub_title = header_sub_title
        all_modes = {**self.app.CUSTOMER_MODES, **self.app.ADMIN_MODES}
        for k, v in self.app.MODES.items():
            if isinstance(self, v) and k in all_modes:
                self.sub_title = pick(*all_modes[k], lang)

        self._show_sidebar = show_sidebar

    def compose(self) -> ComposeResult:
        if self._show_sidebar:
            yield Sidebar()
        yield Header()
        yield Footer(show_command_palette=False)

    async def refresh_sidebar(self) -> None:
        for sidebar in self.query(Sidebar):
            await sidebar.render_user()

    @on(UserLoginMessage)
    async def handle_user_login(self):
        await self.refresh_sidebar()

    async def action_toggle_lang(self) -> None:
        self.app.state.toggle_lang()
        self.configure(show_sidebar=self._show_sidebar)
        await self.refresh_sidebar()
        self.on_lang_changed()

    def on_lang_changed(self) -> None:
        """Screens re-render their localized text here."""

    @work()
    async def action_quit(self):
        await self.app.push_screen_wait(QuitDialogModal(self.app.state.lang))
