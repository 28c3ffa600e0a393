"""
wallet.py - Ed25519 keys, wallets and the public-key directory

Identities in a real deployment are Ed25519 public keys. This module
provides:
    - PublicKey: value-type identity over the raw 32-byte key
    - Wallet: named signing keys; implements SigningService
    - PublicKeyMap: name <-> key directory; implements IdentityDirectory
"""

from __future__ import annotations
from dataclasses import dataclass
import hashlib
from typing import Dict, Iterable, List, Optional

from nacl import signing
from nacl.exceptions import BadSignatureError

from .core import Identity, UnknownIdentity, ValidationError, identity_bytes


@dataclass(frozen=True, order=True, slots=True)
class PublicKey:
    """
    An Ed25519 public key used as an account identity.

    Equality, ordering and hashing are by key bytes, so two PublicKey
    objects for the same key are the same account.
    """
    key: bytes

    def __post_init__(self):
        if not isinstance(self.key, bytes) or len(self.key) != 32:
            raise ValidationError("PublicKey must be 32 raw Ed25519 key bytes")

    def __bytes__(self) -> bytes:
        return self.key

    def hex(self) -> str:
        return self.key.hex()

    @property
    def fingerprint(self) -> str:
        return hashlib.sha256(self.key).hexdigest()[:16]

    def __repr__(self) -> str:
        return f"PublicKey({self.key.hex()[:12]}...)"


def verify_signature(identity: Identity, payload: bytes, signature: bytes) -> bool:
    """Verify an Ed25519 signature; False for bad or malformed input."""
    try:
        verify_key = signing.VerifyKey(identity_bytes(identity))
        verify_key.verify(payload, signature)
    except (BadSignatureError, ValidationError, ValueError, TypeError):
        return False
    return True


class Wallet:
    """
    A set of named Ed25519 signing keys.

    Each name (e.g. "alice", "A1") maps to one key pair. The wallet signs
    for any key it holds and verifies signatures for any public key.

    Example:
        wallet = Wallet.generate(["alice", "bob"])
        alice = wallet.get_public_key("alice")
        sig = wallet.sign_message(b"hello", "alice")
        wallet.verify(alice, b"hello", sig)   # True
    """

    def __init__(self):
        self._keys: Dict[str, signing.SigningKey] = {}
        self._by_public_key: Dict[PublicKey, signing.SigningKey] = {}

    @classmethod
    def generate(cls, names: Iterable[str], seed: Optional[bytes] = None) -> Wallet:
        """
        Create a wallet with a fresh key for every name.

        Args:
            names: Key names
            seed: If given, keys are derived deterministically from seed
                  and the name, so the same seed yields the same keys.
        """
        wallet = cls()
        for name in names:
            if seed is None:
                wallet.add_key(name)
            else:
                derived = hashlib.sha256(seed + b"/" + name.encode("utf-8")).digest()
                wallet.add_key(name, signing.SigningKey(derived))
        return wallet

    def add_key(self, name: str, signing_key: Optional[signing.SigningKey] = None) -> PublicKey:
        """
        Add a named key, generating one if not given.

        Raises:
            ValueError: If name is already used in this wallet
        """
        if name in self._keys:
            raise ValueError(f"Key {name} already in wallet")
        signing_key = signing_key or signing.SigningKey.generate()
        self._keys[name] = signing_key
        public_key = PublicKey(signing_key.verify_key.encode())
        self._by_public_key[public_key] = signing_key
        return public_key

    def get_public_key(self, name: str) -> PublicKey:
        if name not in self._keys:
            raise UnknownIdentity(f"No key named {name} in wallet")
        return PublicKey(self._keys[name].verify_key.encode())

    def names(self) -> List[str]:
        return list(self._keys)

    def sign_message(self, message: bytes, name: str) -> bytes:
        """Sign message with the key called name."""
        if name not in self._keys:
            raise UnknownIdentity(f"No key named {name} in wallet")
        return self._keys[name].sign(message).signature

    def to_public_key_map(self) -> PublicKeyMap:
        key_map = PublicKeyMap()
        for name in self._keys:
            key_map.add_key(name, self.get_public_key(name))
        return key_map

    # SigningService

    def sign(self, identity: Identity, payload: bytes) -> bytes:
        signing_key = self._by_public_key.get(identity)
        if signing_key is None:
            raise UnknownIdentity(f"Wallet holds no key for {identity!r}")
        return signing_key.sign(payload).signature

    def verify(self, identity: Identity, payload: bytes, signature: bytes) -> bool:
        return verify_signature(identity, payload, signature)

    def __contains__(self, identity: Identity) -> bool:
        return identity in self._by_public_key

    def __repr__(self) -> str:
        return f"Wallet({self.names()})"


class PublicKeyMap:
    """
    Directory between user names and public keys.

    Implements IdentityDirectory, so a Ledger can print balances by name.
    Keys without a name display as their fingerprint.
    """

    def __init__(self):
        self._keys: Dict[str, PublicKey] = {}
        self._users: Dict[PublicKey, str] = {}

    def add_key(self, name: str, public_key: PublicKey) -> None:
        """Map name to public_key, replacing any previous key for name."""
        previous = self._keys.get(name)
        if previous is not None and self._users.get(previous) == name:
            del self._users[previous]
        self._keys[name] = public_key
        self._users[public_key] = name

    def add_public_key_map(self, other: PublicKeyMap) -> None:
        for name in other.users():
            self.add_key(name, other.get_public_key(name))

    def get_public_key(self, name: str) -> PublicKey:
        if name not in self._keys:
            raise UnknownIdentity(f"No public key for user {name}")
        return self._keys[name]

    def get_user(self, public_key: PublicKey) -> Optional[str]:
        return self._users.get(public_key)

    def users(self) -> List[str]:
        """User names in the order they were added."""
        return list(self._keys)

    def display_name(self, identity: Identity) -> str:
        name = self._users.get(identity)
        if name is not None:
            return name
        if isinstance(identity, PublicKey):
            return identity.fingerprint
        return str(identity)

    def __len__(self) -> int:
        return len(self._keys)
