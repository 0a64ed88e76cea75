"""Customer profile registry keyed by phone number."""

import logging
from typing import Any

from ..backends.base import BackendError, MemoryBackend
from ..logging import JSONLLogger
from .models import ProfileTraits

logger = logging.getLogger(__name__)


class ProfileRegistry:
    """Looks up and creates customer profiles.

    The phone number is the profile identifier. Store failures are logged
    and reported as False or None, never raised.
    """

    def __init__(
        self,
        backend: MemoryBackend,
        event_log: JSONLLogger | None = None,
    ) -> None:
        self.backend = backend
        self.event_log = event_log

    async def lookup(self, phone: str) -> str | None:
        """Return the phone if a profile exists for it, None otherwise."""
        try:
            profile = await self.backend.fetch_profile(phone)
        except BackendError as e:
            logger.error("Error looking up profile: %s", e)
            return None
        except Exception:
            logger.exception("Unexpected error looking up profile")
            return None

        return profile.phone if profile else None

    async def create_or_update(
        self, phone: str, traits: ProfileTraits | dict[str, Any] | None = None
    ) -> bool:
        """Update the traits of a profile.

        Only traits that carry a value are written, so omitted fields keep
        their stored value. Without traits this is a successful no-op.
        Traits may be given as ProfileTraits or as a {name, email} dict.

        Returns:
            True on success or no-op, False if the traits are unusable or the
            store failed.
        """
        try:
            fields = ProfileTraits.coerce(traits).provided()
            if not fields:
                return True

            await self.backend.update_profile(phone, fields)
        except BackendError as e:
            logger.error("Failed to update profile: %s", e)
            return False
        except Exception:
            logger.exception("Unexpected error updating profile")
            return False

        if self.event_log:
            self.event_log.log("profile_updated", profile_id=phone, fields=sorted(fields))
        return True

    async def get_or_create(
        self, phone: str, traits: ProfileTraits | dict[str, Any] | None = None
    ) -> str | None:
        """Return the profile id for a phone, creating the profile if needed.

        Traits supplied for an existing profile are applied as an update.

        Returns:
            The phone on success, None if the profile could not be created.
        """
        try:
            existing = await self.lookup(phone)
            if existing:
                if traits is not None:
                    await self.create_or_update(phone, traits)
                return existing

            fields = ProfileTraits.coerce(traits).provided()
            await self.backend.insert_profile(
                phone,
                name=fields.get("name"),
                email=fields.get("email"),
            )
        except BackendError as e:
            logger.error("Error creating profile: %s", e)
            return None
        except Exception:
            logger.exception("Unexpected error in get_or_create")
            return None

        if self.event_log:
            self.event_log.log("profile_created", profile_id=phone)
        return phone
