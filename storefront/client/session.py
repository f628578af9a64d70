# storefront/client/session.py
import requests

from storefront.utils.logging import get_logger

logger = get_logger(__name__)

LOGIN_PATH = "/auth/login"


class SessionClosedError(RuntimeError):
    """The session was logged out; the caller has to log in again."""


class AuthenticationExpired(requests.HTTPError):
    """API answered 401. The session is closed and the user goes back to login."""

    login_path = LOGIN_PATH


class ClientSession:
    """
    Per-user storefront session: who is calling, with which token, and the
    cart badge count. Created at login, torn down by :meth:`logout`, and
    passed explicitly to every client call.
    """

    def __init__(
        self,
        base_url: str,
        user_id: int,
        token: str | None = None,
        http: requests.Session | None = None,
        timeout: float = 5,
    ):
        self.base_url = base_url.rstrip("/")
        self.user_id = user_id
        self.token = token
        self.timeout = timeout
        self.cart_count = 0
        self.closed = False

        self.http = http or requests.Session()
        if token:
            self.http.headers["Authorization"] = f"Bearer {token}"

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def ensure_open(self):
        if self.closed:
            raise SessionClosedError(f"Session for user {self.user_id} is logged out")

    def logout(self):
        if self.closed:
            return
        logger.info(f"Logging out user {self.user_id}")
        self.closed = True
        self.token = None
        self.cart_count = 0
        self.http.headers.pop("Authorization", None)
        self.http.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.logout()
