# container.py
"""Obfuscation container with scoped, exclusive plaintext exposure."""
from __future__ import annotations

import contextlib
import copy
import threading
from typing import Any, Generic, Optional, TypeVar

from .config import Backend
from .encrustable import is_encrustable, to_raw_bytes, toggle_encrust, zeroize
from .errors import ConcurrentExposureError, WipedContainerError
from .keystream import KeyLike, KeyMaterial, SeedKey, as_key_material, new_key_material
from .log_utils import log_best_effort
from .logger import get_logger

T = TypeVar("T")

_log = get_logger(__name__)


def _private_key(key: KeyLike) -> KeyMaterial:
    """Key material referenced by one container only; caller objects are copied."""
    material = as_key_material(key)
    if material is key:
        material = material.copy()
    material._check()
    return material


class Encrusted(Generic[T]):
    """
    Owns a value that is kept obfuscated, plus the key material used for it.

    The plaintext is only reachable through a ``Decrusted`` guard:

        secret = Encrusted("api-token", SeedKey.random())
        with secret.decrust() as guard:
            use(guard.value)
        # re-obfuscated here, on every exit path

        secret.wipe()   # or use the container itself as a context manager

    The container takes ownership of the value: mutable values (lists,
    bytearrays, records) are obfuscated in place. Key material objects are
    copied, so no two containers share key bytes; the private copy is wiped
    together with the container and the caller's object is left alone.

    Threat model:
    - PROTECTS against: plaintext showing up in memory dumps, string searches,
      generated source
    - DOES NOT protect against: an attacker who can read the key material next
      to the data (the fast backend is obfuscation, not encryption)
    """

    __slots__ = ("_data", "_key", "_lock", "_exposed", "_wiped", "__weakref__")

    def __init__(self, data: T, key: KeyLike) -> None:
        self._init_state()
        material = _private_key(key)
        try:
            self._data = toggle_encrust(data, material.engine())
        except BaseException:
            material.wipe()
            raise
        self._key = material
        _log.debug("Encrusted %s value (backend=%s)", type(data).__name__, material.backend.value)

    def _init_state(self) -> None:
        self._data: Any = None
        self._key: Optional[KeyMaterial] = None
        self._lock = threading.RLock()
        self._exposed = False
        self._wiped = False

    @classmethod
    def from_encrusted_data(cls, data: Any, key: KeyLike) -> Encrusted[T]:
        """
        Wrap data that is ALREADY obfuscated under ``key``. Reserved for code
        emitted by ``encrust.generator``.

        Nothing is verified: data obfuscated under different key material
        decrusts to silently wrong plaintext.
        """
        obj = cls.__new__(cls)
        obj._init_state()
        obj._key = _private_key(key)
        obj._data = data
        return obj

    @classmethod
    def new_with_random(cls, data: T, backend: Backend | str | None = None) -> Encrusted[T]:
        """Encrust ``data`` under fresh random key material."""
        return cls(data, new_key_material(backend))

    # ── state ──────────────────────────────────────────────────────────────
    @property
    def wiped(self) -> bool:
        return self._wiped

    @property
    def exposed(self) -> bool:
        return self._exposed

    @property
    def backend(self) -> Backend:
        self._check_usable()
        return self._key.backend

    def _check_usable(self) -> None:
        if self._wiped:
            raise WipedContainerError("Encrusted data has been wiped")

    def _check_idle(self, action: str) -> None:
        self._check_usable()
        if self._exposed:
            raise ConcurrentExposureError(f"Cannot {action} while the data is exposed")

    # ── exposure ───────────────────────────────────────────────────────────
    def decrust(self) -> Decrusted[T]:
        """
        De-obfuscate in place and return the exclusive guard.

        Use it as a context manager; the data is re-obfuscated when the
        ``with`` block exits, whatever the exit path.

        Raises:
            ConcurrentExposureError: if a guard is already outstanding
            WipedContainerError: if the container was wiped
        """
        return Decrusted(self)

    expose = decrust

    def _acquire(self) -> None:
        with self._lock:
            self._check_usable()
            if self._exposed:
                _log.warning("Rejected second exposure of an Encrusted value")
                raise ConcurrentExposureError("Encrusted data is already exposed")
            self._data = toggle_encrust(self._data, self._key.engine())
            self._exposed = True

    def _restore(self) -> None:
        with self._lock:
            if not self._exposed:
                return
            try:
                self._data = toggle_encrust(self._data, self._key.engine())
            except BaseException:
                # never leave plaintext behind: destroy instead
                _log.error("Re-obfuscation failed; wiping exposed data")
                self._exposed = False
                self._destroy()
                raise
            self._exposed = False

    # ── key management ─────────────────────────────────────────────────────
    def rekey(self, new_key: KeyLike) -> None:
        """
        Re-obfuscate under ``new_key``.

        Works on a copy: the copy is de-obfuscated under the current key and
        obfuscated under the new one, and only then swapped in. On failure the
        copy is zeroized and the container is left as it was. The previous key
        material and obfuscated data are wiped after the swap.
        """
        with self._lock:
            self._check_idle("rekey")
            material = _private_key(new_key)
            candidate = copy.deepcopy(self._data)
            try:
                candidate = toggle_encrust(candidate, self._key.engine())
                candidate = toggle_encrust(candidate, material.engine())
            except BaseException:
                zeroize(candidate)
                material.wipe()
                raise
            old_data, old_key = self._data, self._key
            self._data, self._key = candidate, material
            zeroize(old_data)
            old_key.wipe()
            _log.debug("Rekeyed Encrusted value (backend=%s)", material.backend.value)

    def reseed(self, seed: int) -> None:
        """Rekey to the fast backend with ``seed``."""
        self.rekey(SeedKey(seed))

    # ── destruction ────────────────────────────────────────────────────────
    def wipe(self) -> None:
        """
        Overwrite data and key material with the wipe pattern. Idempotent.

        Raises:
            ConcurrentExposureError: if a guard is outstanding
        """
        with self._lock:
            if self._wiped:
                return
            if self._exposed:
                raise ConcurrentExposureError("Cannot wipe while the data is exposed")
            self._destroy()

    def _destroy(self) -> None:
        try:
            if self._data is not None:
                self._data = zeroize(self._data)
        finally:
            if self._key is not None:
                self._key.wipe()
            self._data = None
            self._wiped = True
            _log.debug("Wiped Encrusted value")

    def raw_bytes(self) -> bytes:
        """Serialized obfuscated bytes of the stored data (diagnostics)."""
        with self._lock:
            self._check_idle("read raw bytes")
            return to_raw_bytes(self._data)

    def __enter__(self) -> Encrusted[T]:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.wipe()

    def __del__(self) -> None:
        try:
            if not self._wiped:
                self._destroy()
        except Exception as exc:
            log_best_effort(__name__, exc, message="Encrusted cleanup failed")

    def __reduce__(self):
        raise TypeError("Encrusted values cannot be pickled")

    def __copy__(self):
        raise TypeError("Encrusted values cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError("Encrusted values cannot be copied")

    def __repr__(self) -> str:
        return "<Encrusted ***>"

    __str__ = __repr__


class Decrusted(contextlib.AbstractContextManager, Generic[T]):
    """
    Exclusive guard over an exposed ``Encrusted`` value.

    Construction de-obfuscates the container's data in place; ``release()``
    re-obfuscates it with a freshly built engine. ``release()`` runs from
    ``__exit__``, so the ``with`` form restores obfuscation on normal exit,
    early return and exceptions alike.
    """

    __slots__ = ("_container",)

    def __init__(self, container: Encrusted[T]) -> None:
        self._container: Optional[Encrusted[T]] = None
        container._acquire()
        self._container = container

    def _owner(self) -> Encrusted[T]:
        if self._container is None:
            raise RuntimeError("Decrusted guard has been released")
        return self._container

    @property
    def value(self) -> T:
        """The plain value. Mutable values may be changed in place."""
        return self._owner()._data

    @value.setter
    def value(self, new_value: T) -> None:
        """
        Replace the root value. The replaced value is zeroized, so do not keep
        mutable parts of it (bytearrays, lists, records) inside ``new_value``.
        """
        if not is_encrustable(new_value):
            raise TypeError(f"{type(new_value).__name__} is not encrustable")
        owner = self._owner()
        old, owner._data = owner._data, new_value
        if old is not new_value:
            zeroize(old)

    @property
    def released(self) -> bool:
        return self._container is None

    def release(self) -> None:
        """Re-obfuscate the data and end the exposure. Idempotent."""
        container, self._container = self._container, None
        if container is not None:
            container._restore()

    def __enter__(self) -> Decrusted[T]:
        self._owner()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()

    def __del__(self) -> None:
        try:
            self.release()
        except Exception as exc:
            log_best_effort(__name__, exc, message="Decrusted release failed")

    def __repr__(self) -> str:
        state = "released" if self._container is None else "active"
        return f"<Decrusted {state} ***>"


__all__ = ["Encrusted", "Decrusted"]
