from collections.abc import Iterable
from pathlib import Path
import json
import copy
import logging
import os
import stat
import tempfile
from functools import wraps

import google.auth
import google.auth.exceptions
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build, Resource
import googleapiclient.discovery_cache as gws_discovery_cache

from .errors import ConfigurationError, CredentialPathError

logger = logging.getLogger(__name__)

TOKEN_FILE_MODE = 0o600
TOKEN_DIR_MODE = 0o700


def validate_credential_path(path: Path|str) -> Path:
    """
    Reject credential paths that traverse upwards or point outside the user's
    home or the temp directory.  Returns the absolute path.
    """
    p = str(path or "").strip()
    if not p:
        raise CredentialPathError("credential path cannot be empty")
    expanded = os.path.expanduser(p)
    if ".." in Path(expanded).parts:
        raise CredentialPathError(f"credential path contains directory traversal: {p}")
    absolute = Path(os.path.abspath(expanded))
    allowed = [Path.home(), Path(tempfile.gettempdir()), Path("/tmp")]
    for a in allowed:
        try:
            absolute.relative_to(os.path.abspath(a))
            return absolute
        except ValueError:
            continue
    raise CredentialPathError(f"credential path must be under the home or temp directory: {absolute}")


def check_file_permissions(path: Path|str) -> list[str]:
    """
    Warn if a credential file is readable by group or others.
    A missing file isn't a problem here, returns the warnings that were logged.
    """
    p = Path(path)
    try:
        mode = p.stat().st_mode
    except FileNotFoundError:
        return []
    warnings = []
    if mode & 0o044:
        warnings.append(f"{p} has insecure permissions {stat.filemode(mode)}, should be -rw------- (chmod 600)")
        if mode & stat.S_IROTH:
            warnings.append(f"CRITICAL: {p} is world-readable")
    for w in warnings:
        logger.warning(w)
    return warnings


def save_token(path: Path, creds: Credentials, scopes: list[str]) -> None:
    """
    Persist what is needed to refresh the session, readable only by the owner.
    """
    path = validate_credential_path(path)
    path.parent.mkdir(mode=TOKEN_DIR_MODE, parents=True, exist_ok=True)
    user_info = {'refresh_token': creds.refresh_token, 'client_id': creds.client_id,
                 'client_secret': creds.client_secret, 'scopes': scopes}
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, TOKEN_FILE_MODE)
    with os.fdopen(fd, 'w', encoding='utf-8') as f:
        json.dump(user_info, f, ensure_ascii=False, indent=2)
    # O_CREAT mode doesn't apply to an existing file
    os.chmod(path, TOKEN_FILE_MODE)
    logger.debug("saved token to %s", path)


def load_token(path: Path, scopes: list[str]) -> Credentials|None:
    """
    Load stored credentials if they cover the requested scopes.
    A token for a narrower scope set is useless so it gets removed.
    """
    path = validate_credential_path(path)
    if not (path.exists() and path.is_file()):
        return None
    check_file_permissions(path)
    with open(path, 'r', encoding='utf-8') as f:
        try:
            j = json.load(f)
        except ValueError:
            logger.warning("token file %s is corrupt, re-authorizing", path)
            j = {}
    stored = j.get('scopes', [])
    if not j or not all(s in stored for s in scopes):
        path.unlink()
        return None
    return Credentials.from_authorized_user_info(j, scopes)


class __GWSAccess():
    """
    Authenticated access to Google Workspace for an administrator.
    See https://developers.google.com/workspace/guides/create-credentials
    for how to obtain an OAuth client secrets file.  The first run goes through
    the consent screen in a browser; after that the stored token is refreshed.

    There's only ever one authenticated session per process so this lives as a
    module singleton and services are handed out by get_service or the decorator.
    """

    __SCOPES = {
        "user": "https://www.googleapis.com/auth/admin.directory.user",
        "user-ro": "https://www.googleapis.com/auth/admin.directory.user.readonly",
        "group": "https://www.googleapis.com/auth/admin.directory.group",
        "group-ro": "https://www.googleapis.com/auth/admin.directory.group.readonly",
        "member": "https://www.googleapis.com/auth/admin.directory.group.member",
        "member-ro": "https://www.googleapis.com/auth/admin.directory.group.member.readonly",
        "orgunit": "https://www.googleapis.com/auth/admin.directory.orgunit",
        "resource": "https://www.googleapis.com/auth/admin.directory.resource.calendar",
        "resource-ro": "https://www.googleapis.com/auth/admin.directory.resource.calendar.readonly",
        "calendar": "https://www.googleapis.com/auth/calendar",
        "events": "https://www.googleapis.com/auth/calendar.events",
        "datatransfer": "https://www.googleapis.com/auth/admin.datatransfer",
        "group-settings": "https://www.googleapis.com/auth/apps.groups.settings",
        "audit-ro": "https://www.googleapis.com/auth/admin.reports.audit.readonly",
    }
    __SCOPE_URL_PREFIX = "https://www.googleapis.com/"

    __DEFAULT_SCOPES = ["user", "group", "member", "orgunit", "resource", "calendar",
                        "events", "datatransfer", "group-settings", "audit-ro"]
    __DEFAULT_AUTH_PROMPT_MSG = "Please visit this URL to authorize gwsadmin: {url}"
    __DEFAULT_AUTH_FLOW_SUCCESS_MSG = "Authorization complete, you may close this window."
    __DEFAULT_SECRETS = Path.home() / ".credentials" / "client_secret.json"
    __DEFAULT_TOKEN = Path.home() / ".credentials" / "gwsadmin.json"

    def __init__(self) -> None:
        self.reset()

    def __bool__(self) -> bool:
        """True if we are connected and authenticated"""
        return self.connected

    def __str__(self) -> str:
        if self.connected:
            return f"Connected:{str(self.session_scopes)}"
        return f"Disconnected:{str(self.__scopes)}"

    def __repr__(self) -> str:
        return f"{str(self.__class__)}:{str(self)}"

    @classmethod
    def get_scope(cls, scope: str) -> str:
        """
        Get a scope based on simplified label.
        A raw URL will also be expected.
        """
        s = str(scope)
        sc = cls.__SCOPES.get(s, "")
        if not sc and s.startswith(cls.__SCOPE_URL_PREFIX):
            sc = s
        return sc

    @property
    def client_secrets(self) -> Path:
        """
        Path to client secrets file as provided by Google when generating access credentials.
        """
        return self.__secrets

    @client_secrets.setter
    def client_secrets(self, value: Path|str) -> None:
        val = Path(os.path.expanduser(str(value)))
        if val != self.__secrets:
            self.__secrets = val
            self.clear()

    @property
    def token_file(self) -> Path:
        """
        Path to the stored token so the consent flow isn't needed on every run.
        """
        return self.__token

    @token_file.setter
    def token_file(self, value: Path|str) -> None:
        val = Path(os.path.expanduser(str(value)))
        if val != self.__token:
            self.__token = val
            self.clear()

    def clear(self) -> None:
        """Drop the session, keeping the configuration."""
        self.__creds = None
        self.__services = {}

    @property
    def connected(self) -> bool:
        return bool(self.__creds) and bool(self.__creds.valid)

    @property
    def session_scopes(self) -> list[str]:
        """
        Scopes granted by Google for this session, as opposed to self.scopes
        which is what gets requested.
        """
        if self.connected:
            return list(self.__creds.scopes or [])
        return []

    @property
    def scopes(self) -> list[str]:
        return self.__scopes

    @scopes.setter
    def scopes(self, value: None|list[str]|str) -> None:
        slist = []
        if value is not None:
            items = [value] if isinstance(value, str) or not isinstance(value, Iterable) else value
            for v in items:
                s = self.get_scope(str(v))
                if s and s not in slist:
                    slist.append(s)
        self.__scopes = slist
        self.clear()

    def reset(self) -> None:
        """
        Reset all connection state to defaults.
        """
        self.__secrets = self.__DEFAULT_SECRETS
        self.__token = self.__DEFAULT_TOKEN
        self.__discovery_cache = gws_discovery_cache.autodetect()
        self.__creds = None
        self.__services = {}
        self.__scopes = [self.get_scope(s) for s in self.__DEFAULT_SCOPES]
        self.auth_server = 'localhost'
        self.auth_port = 0
        self.auth_prompt_msg = self.__DEFAULT_AUTH_PROMPT_MSG
        self.auth_flow_success_msg = self.__DEFAULT_AUTH_FLOW_SUCCESS_MSG

    def forget(self) -> bool:
        """
        Remove the stored token so the next connect runs the consent flow.
        Returns True if there was something to remove.
        """
        self.clear()
        path = validate_credential_path(self.__token)
        if path.exists():
            path.unlink()
            logger.info("removed stored token %s", path)
            return True
        return False

    def connect(self) -> bool:
        """
        Establish an authenticated session: stored token, then refresh, then
        the installed app consent flow.  A good session is written back to the
        token file.
        """
        self.clear()
        requested_scopes = copy.copy(self.__scopes)
        if not requested_scopes:
            return False
        self.__creds = load_token(self.__token, requested_scopes)
        if not self.connected and self.__creds and self.__creds.refresh_token:
            try:
                self.__creds.refresh(Request())
            except google.auth.exceptions.RefreshError as e:
                logger.warning("failed to refresh stored token: %s, re-authorizing", e)
                self.__creds = None

        if not self.connected:
            secrets = validate_credential_path(self.__secrets)
            if secrets.exists() and secrets.is_file():
                check_file_permissions(secrets)
                flow = InstalledAppFlow.from_client_secrets_file(str(secrets), requested_scopes)
                self.__creds = flow.run_local_server(host=self.auth_server, port=self.auth_port,
                                                     authorization_prompt_message=self.auth_prompt_msg,
                                                     success_message=self.auth_flow_success_msg)
            else:
                # this will look at GOOGLE_APPLICATION_CREDENTIALS and the
                # other cloud default locations
                try:
                    self.__creds, _ = google.auth.default(scopes=requested_scopes)
                except google.auth.exceptions.DefaultCredentialsError as e:
                    raise ConfigurationError(
                        f"client secret file not found: {secrets}",
                        ["download an OAuth client secret from the Google Cloud console",
                         "pass it with --client-secret or set GWSADMIN_CLIENT_SECRET"]) from e
                if not self.connected and hasattr(self.__creds, "refresh"):
                    self.__creds.refresh(Request())

        if self.connected and isinstance(self.__creds, Credentials) and self.__creds.refresh_token:
            save_token(self.__token, self.__creds, requested_scopes)
        return self.connected

    def get_service(self, name: str, version: str) -> Resource:
        """
        Build the requested service if not already available, connecting if required.
        """
        if not self.connected:
            self.connect()
        if not self.connected:
            raise ConfigurationError("not authenticated with Google Workspace", ["run 'gwsadmin init'"])
        id = f'{name}:{version}'
        s = self.__services.get(id, None)
        if s is None:
            s = build(name, version, credentials=self.__creds, cache=self.__discovery_cache)
            self.__services[id] = s
        return s


gws = __GWSAccess()


def service(name: str, version: str):
    """
    Simple decorator to deliver the required service to a function that
    needs access to a GWS service to build a request.
    param: name: service name
    param: version: service version
    """
    def _inner_decorator(f):
        @wraps(f)
        def wrapped(*args, **kwargs):
            kwargs['service'] = gws.get_service(name, version)
            return f(*args, **kwargs)
        return wrapped
    return _inner_decorator
