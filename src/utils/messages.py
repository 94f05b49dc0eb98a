from typing import Optional

from textual.message import Message


class QuitRequestedMessage(Message):
    """
    broadcasted when the app is about to quit
    """

    bubble = True


class LogoutRequestedMessage(Message):
    """
    posted by the sidebar once the user confirmed signing out
    """

    bubble = True


class SessionChangedMessage(Message):
    """
    Posted at app level whenever the session store reports a change.
    token is None once the session ended (logout, expiry or a 401).
    """

    bubble = True

    def __init__(self, token: Optional[str]) -> None:
        super().__init__()
        self.token = token


class CartChangedMessage(Message):
    """
    Posted by a screen to itself when the cart store changed,
    so the refresh runs as an exclusive worker of that screen.
    """

    bubble = False
