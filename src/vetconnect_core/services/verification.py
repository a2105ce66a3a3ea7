"""
Identity/verification port.

License and education checks are external and possibly slow. The onboarding
state machine calls them outside of any aggregate lock and records the
boolean outcome as a step decision.
"""

import asyncio
import logging
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class IdentityVerifier(ABC):
    """Verifies veterinary credentials against an external authority."""

    @abstractmethod
    async def verify_license(self, license_number: str, state: str) -> bool:
        """Return True when the license is valid in the given state."""

    @abstractmethod
    async def verify_education(self, institution: str, degree: str) -> bool:
        """Return True when the degree from the institution can be confirmed."""


class SimulatedIdentityVerifier(IdentityVerifier):
    """
    Rule-based stand-in for a real verification service.

    A license is accepted when its number has at least six characters and
    the state is a two-letter code. A degree is accepted when the
    institution is given and the degree names a veterinary qualification.
    """

    def __init__(self, delay: float = 0.0):
        """
        Initialize the verifier.

        Args:
            delay: Seconds to wait before answering, to mimic a remote call
        """
        self.delay = delay

    async def _wait(self) -> None:
        if self.delay > 0:
            await asyncio.sleep(self.delay)

    async def verify_license(self, license_number: str, state: str) -> bool:
        await self._wait()
        number = (license_number or "").strip()
        state = (state or "").strip()
        valid = len(number) >= 6 and len(state) == 2 and state.isalpha()
        logger.info(f"License {number} ({state}) verification result: {valid}")
        return valid

    async def verify_education(self, institution: str, degree: str) -> bool:
        await self._wait()
        valid = bool((institution or "").strip()) and "Veterinary" in (degree or "")
        logger.info(
            f"Education {degree} at {institution} verification result: {valid}"
        )
        return valid
