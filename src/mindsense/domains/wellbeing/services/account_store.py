"""Account persistence: signed-in session, known emails, intro flag, onboarding.

Every value goes through a ``KeyValueStore``; with an encrypted SQLite
store the session and onboarding records are encrypted at rest.
"""

from __future__ import annotations

import logging

from mindsense.core.storage.encryption import EncryptionError
from mindsense.core.storage.kv_store import KeyValueStore
from mindsense.domains.wellbeing.domain_logic.app_state import (
    AuthSession,
    OnboardingProgress,
)

logger = logging.getLogger(__name__)

SESSION_EMAIL_KEY = "auth.session.email.v2"
SESSION_EXTERNAL_ID_KEY = "auth.session.external_user_id.v1"
SESSION_DISPLAY_NAME_KEY = "auth.session.display_name.v1"
KNOWN_EMAIL_PREFIX = "auth.email_lookup."
ONBOARDING_PREFIX = "onboarding.progress."
INTRO_SEEN_KEY = "intro.seen.v1"


def _trimmed_non_empty(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


class AccountStore:
    """Session and onboarding records for the local account.

    Usage::

        accounts = AccountStore(InMemoryKeyValueStore())
        accounts.persist_session("User@Example.com", "ext-1", "Taylor")
        accounts.load_session().email  # "user@example.com"
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def load_session(self) -> AuthSession | None:
        email = self._store.load(SESSION_EMAIL_KEY)
        if not email:
            return None
        return AuthSession(
            email=email,
            external_user_id=self._store.load(SESSION_EXTERNAL_ID_KEY),
            display_name=self._store.load(SESSION_DISPLAY_NAME_KEY),
        )

    def persist_session(
        self,
        email: str,
        external_user_id: str | None = None,
        display_name: str | None = None,
    ) -> AuthSession:
        """Store the signed-in account.

        The email is trimmed and lower-cased. Blank ids and names are
        dropped rather than stored. When an external id is present the
        id-to-email mapping is remembered for later sign-ins that return
        no email.
        """
        normalized = email.strip().lower()
        if not normalized:
            raise ValueError("Session email must not be empty")
        self._store.save(SESSION_EMAIL_KEY, normalized)

        external_user_id = _trimmed_non_empty(external_user_id)
        if external_user_id:
            self._store.save(SESSION_EXTERNAL_ID_KEY, external_user_id)
            self._store.save(KNOWN_EMAIL_PREFIX + external_user_id, normalized)
        else:
            self._store.remove(SESSION_EXTERNAL_ID_KEY)

        display_name = _trimmed_non_empty(display_name)
        if display_name:
            self._store.save(SESSION_DISPLAY_NAME_KEY, display_name)
        else:
            self._store.remove(SESSION_DISPLAY_NAME_KEY)

        logger.info("Session persisted for %s", normalized)
        return AuthSession(normalized, external_user_id, display_name)

    def clear_session(self) -> None:
        """Forget the signed-in account. Known-email mappings are kept."""
        for key in (SESSION_EMAIL_KEY, SESSION_EXTERNAL_ID_KEY, SESSION_DISPLAY_NAME_KEY):
            self._store.remove(key)
        logger.info("Session cleared")

    def load_known_email(self, external_user_id: str | None) -> str | None:
        """Email previously seen for an external account id, if any."""
        external_user_id = _trimmed_non_empty(external_user_id)
        if external_user_id is None:
            return None
        return self._store.load(KNOWN_EMAIL_PREFIX + external_user_id)

    # ------------------------------------------------------------------
    # Intro and onboarding
    # ------------------------------------------------------------------

    def has_seen_intro(self) -> bool:
        return bool(self._store.load(INTRO_SEEN_KEY, False))

    def set_has_seen_intro(self, seen: bool = True) -> None:
        self._store.save(INTRO_SEEN_KEY, bool(seen))

    def load_onboarding(self, email: str) -> OnboardingProgress:
        """Stored progress for ``email``; empty when absent or unreadable."""
        key = self._onboarding_key(email)
        try:
            data = self._store.load(key)
            if data is None:
                return OnboardingProgress()
            return OnboardingProgress.from_dict(data)
        except (EncryptionError, ValueError, TypeError, AttributeError) as exc:
            logger.warning("Discarding unreadable onboarding record %s: %s", key, exc)
            return OnboardingProgress()

    def persist_onboarding(self, progress: OnboardingProgress, email: str) -> None:
        self._store.save(self._onboarding_key(email), progress.to_dict())

    @staticmethod
    def _onboarding_key(email: str) -> str:
        return ONBOARDING_PREFIX + email.strip().lower()
