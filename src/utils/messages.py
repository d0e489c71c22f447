from textual.message import Message

from shop.errors import PersistenceError


class QuitRequestedMessage(Message):
    """
    broadcasted when the app is about to quit
    """

    bubble = True


class UserLogoutMessage(Message):
    """
    broadcasted when the user logs out
    """

    bubble = True


class UserLoginMessage(Message):
    """
    Fired when user logged in (email, phone or as guest), so the screen can refresh
    """

    bubble = True


class CartChangedMessage(Message):
    """
    Fired whenever the local cart changes: catalog add, quantity buttons,
    removal, clearing, or a placed order.

    If posted from outside CartScreen, make sure to post at App level
    """

    bubble = True


class NewOrderMessage(Message):
    """
    Fired when a new order is written.
    Listened to by past orders and the admin orders screen
    """

    bubble = True

    def __init__(self, order_id: str) -> None:
        super().__init__()
        self.order_id = order_id


class PersistenceErrorMessage(Message):
    """
    Carries a rejected write to the app, which owns the one handler that
    tells the user and logs the diagnostic context.
    """

    bubble = True

    def __init__(self, error: PersistenceError) -> None:
        super().__init__()
        self.error = error


class ModeSwitchedMessage(Message):
    """
    fired whenever switch_mode is called
    must be fired from app level
    """

    bubble = True

    def __init__(self, old_mode: str, new_mode: str) -> None:
        super().__init__()
        self.old_mode = old_mode
        self.new_mode = new_mode
