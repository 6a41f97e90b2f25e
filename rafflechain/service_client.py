import os
import logging
from urllib.parse import urljoin
from typing import Any, Mapping, Optional

import requests
from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def open_session(base_url: str) -> requests.Session:
    """Open a requests session against a backing service and probe it.

    Parameters
    ----------
    base_url : str
        ``https://`` URL of the service root.

    Returns
    -------
    requests.Session
        The initialized session.

    Raises
    ------
    RuntimeError
        If the service cannot be reached. Any underlying exception is re-raised
        as a ``RuntimeError`` with context.
    """
    session = requests.Session()
    try:
        response = session.get(base_url)
        response.raise_for_status()
        logger.debug(f"Session opened against {base_url}")
        return session
    except Exception as e:
        logger.critical(f"Error occurred while starting session: {e}")
        raise RuntimeError(f"Failed to establish session: {e}") from e


class ServiceClient:
    """Thin JSON client shared by the wallet and randomness integrations.

    Subclasses set ``fqdn_env`` and ``token_env`` to the environment variables
    naming the service host and its API token.
    """

    fqdn_env = ""
    token_env = ""

    def __init__(
        self,
        base_fqdn: Optional[str] = None,
        api_token: Optional[str] = None,
        timeout: int = 45,
        session: Optional[requests.Session] = None,
    ):
        load_dotenv()
        fqdn = base_fqdn or os.getenv(self.fqdn_env)
        if not fqdn:
            raise ValueError(f"Environment variable '{self.fqdn_env}' is not set")
        token = api_token or os.getenv(self.token_env)
        if not token:
            raise ValueError(f"Environment variable '{self.token_env}' is not set")

        self.base_url = f"https://{fqdn}".rstrip("/")
        self.session = session if session is not None else open_session(self.base_url)
        self.token = token
        self.timeout = timeout

    # -------- headers --------
    @property
    def auth_headers(self) -> Mapping[str, str]:
        return {"Accept": "application/json", "Authorization": f"Bearer {self.token}"}

    # -------- core request --------
    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict] = None,
        json: Optional[dict] = None,
    ) -> Any:
        url = urljoin(self.base_url + "/", path.lstrip("/"))
        r = self.session.request(
            method=method.upper(),
            url=url,
            headers=self.auth_headers,
            params=params,
            json=json,
            timeout=self.timeout,
        )
        r.raise_for_status()
        return r.json() if r.content else None
