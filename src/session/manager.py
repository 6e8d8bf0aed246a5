import asyncio
import logging
from typing import Callable, List, Optional, Set

from client.client import IdentityClient
from client.credential_store import SecureCredentialStore
from client.exceptions import LoginInProgressError, StorageError
from schema import ProviderCredentialKind, User, VerificationResult, VerificationStatus
from utils import mask_token
from .models import Session

logger = logging.getLogger('rideshare.session.manager')

SessionListener = Callable[[Session], None]


class SessionManager:
    """
    Owns the in-memory session and is the only writer of it.

    All methods must run on one asyncio event loop. Network calls and store
    I/O are the only suspension points; results are applied when they resume.

    Background verifications are tagged with the token they were issued for.
    A result whose token is no longer the current session token is discarded.
    A rejection of the current token always signs out, even mid-login.
    """

    def __init__(self, credential_store: SecureCredentialStore, identity_client: IdentityClient):
        self._store = credential_store
        self._client = identity_client

        self._user: Optional[User] = None
        self._session_token: Optional[str] = None
        self._is_restoring = True
        self._verifications_in_flight: Set[object] = set()

        self._initialized = False
        self._login_in_progress = False
        self._restored = asyncio.Event()
        self._store_lock = asyncio.Lock()
        self._refresh_task: Optional[asyncio.Task] = None
        self._refresh_marker: Optional[object] = None
        self._listeners: List[SessionListener] = []

    @property
    def session(self) -> Session:
        return Session(
            user=self._user,
            session_token=self._session_token,
            is_restoring=self._is_restoring,
            is_refreshing=bool(self._verifications_in_flight),
        )

    @property
    def user(self) -> Optional[User]:
        return self._user

    @property
    def is_restoring(self) -> bool:
        return self._is_restoring

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None and self._session_token is not None

    @property
    def login_in_progress(self) -> bool:
        return self._login_in_progress

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener called with a fresh snapshot after every transition."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def wait_until_restored(self) -> None:
        await self._restored.wait()

    async def initialize(self) -> None:
        """
        Restore the session from the credential store.

        A stored token plus cached user makes the session authenticated right
        away, before any network call, and schedules a background verification
        that this method does not wait for. `is_restoring` becomes false before
        this returns, whatever the outcome.
        """
        if self._initialized:
            raise RuntimeError('SessionManager.initialize() must only be called once')
        self._initialized = True

        token: Optional[str] = None
        user: Optional[User] = None
        try:
            token = await self._store.get_token()
            user = await self._store.get_user()
        except Exception as e:
            logger.error(f"Auth check failed, starting signed out: {e}")
            token, user = None, None

        if self._login_in_progress or self._session_token is not None:
            logger.info("Login started during restore, ignoring stored credentials")
        elif token and user:
            logger.info(f"Restored session for {user.email} from credential store")
            self._session_token = token
            self._user = user
            self._refresh_task = self._start_background_verification(token)
        else:
            logger.info("No stored credentials, starting signed out")

        self._is_restoring = False
        self._restored.set()
        self._notify()

    async def refresh(self) -> Optional[VerificationResult]:
        """Verify the current session now. Returns None when signed out."""
        token = self._session_token
        if not token:
            return None
        marker = object()
        self._verifications_in_flight.add(marker)
        self._notify()
        return await self._run_verification(token, marker)

    async def login(
        self,
        provider_credential: str,
        kind: ProviderCredentialKind = ProviderCredentialKind.ID_TOKEN,
    ) -> User:
        """
        Exchange a Google credential for a session.

        Errors from the identity client propagate unchanged and leave the
        session as it was. A second call while one is running raises
        LoginInProgressError.
        """
        if self._login_in_progress:
            raise LoginInProgressError('A login is already in progress')

        self._login_in_progress = True
        try:
            result = await self._client.exchange_provider_credential(provider_credential, kind)

            async with self._store_lock:
                try:
                    await self._store.set_token(result.session_token)
                    await self._store.set_user(result.user)
                except StorageError as e:
                    logger.error(f"Could not persist credentials, session will not survive a restart: {e}")
                    # The store holds both entries or neither
                    try:
                        await self._store.clear_auth_data()
                    except StorageError as clear_error:
                        logger.error(f"Could not roll back partial credentials: {clear_error}")

            self._session_token = result.session_token
            self._user = result.user
            logger.info(f"Logged in as {result.user.email} (token {mask_token(result.session_token)})")
            self._notify()
            return result.user
        finally:
            self._login_in_progress = False

    async def logout(self) -> None:
        """Sign out. Always ends anonymous, even when clearing the store fails."""
        self._cancel_background_verification()
        self._session_token = None
        self._user = None
        self._notify()

        async with self._store_lock:
            try:
                await self._store.clear_auth_data()
            except Exception as e:
                logger.error(f"Logout failed to clear credential store: {e}")
        logger.info("Logged out")

    async def login_with_password(self, email: str, password: str) -> User:
        raise NotImplementedError('Email/password login is not implemented. Please use Google login.')

    async def register(self, email: str, password: str, name: str, phone: str) -> User:
        raise NotImplementedError('Email/password registration is not implemented. Please use Google login.')

    async def toggle_role(self) -> User:
        raise NotImplementedError('Role toggling is not implemented yet.')

    async def close(self) -> None:
        task = self._refresh_task
        self._cancel_background_verification()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                logger.debug("Background verification cancelled on close")
        await self._client.close()

    def _start_background_verification(self, token: str) -> asyncio.Task:
        marker = object()
        self._verifications_in_flight.add(marker)
        self._refresh_marker = marker
        return asyncio.create_task(self._run_verification(token, marker))

    def _cancel_background_verification(self) -> None:
        if self._refresh_task is not None and not self._refresh_task.done():
            self._refresh_task.cancel()
        # A task cancelled before its first step never reaches its finally block
        if self._refresh_marker is not None:
            self._verifications_in_flight.discard(self._refresh_marker)
        self._refresh_task = None
        self._refresh_marker = None

    async def _run_verification(self, token: str, marker: object) -> VerificationResult:
        try:
            try:
                result = await self._client.fetch_current_user(token)
            except Exception as e:
                logger.error(f"Token verification failed unexpectedly: {e}", exc_info=True)
                result = VerificationResult.indeterminate(error=str(e))
        finally:
            self._verifications_in_flight.discard(marker)

        await self._apply_verification(token, result)
        return result

    async def _apply_verification(self, token: str, result: VerificationResult) -> None:
        if token != self._session_token:
            logger.info(f"Discarding verification for superseded token {mask_token(token)}")
            self._notify()
            return
        if result.status == VerificationStatus.AUTH_REJECTED:
            logger.warning(f"Session token rejected by backend, signing out: {result.error}")
            self._session_token = None
            self._user = None
            self._notify()
            async with self._store_lock:
                if self._session_token is not None:
                    # A login completed while waiting for the lock
                    return
                await self._store.clear_auth_data()

        elif result.status == VerificationStatus.SUCCESS and result.user is not None:
            self._user = result.user
            self._notify()
            async with self._store_lock:
                if self._session_token != token:
                    return
                try:
                    await self._store.set_user(result.user)
                except StorageError as e:
                    logger.error(f"Could not persist refreshed user: {e}")

        else:
            logger.info(
                f"Token verification inconclusive (status {result.http_status}), keeping session: {result.error}"
            )
            self._notify()

    def _notify(self) -> None:
        snapshot = self.session
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"Session listener failed: {e}", exc_info=True)
