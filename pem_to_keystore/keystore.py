import logging
import struct
from typing import Iterable, List, Tuple

import jks
from jks.util import DuplicateAliasException, KeystoreException

from pem_to_keystore.errors import DuplicateAliasError, EncodingFailureError


_X509_CERTIFICATE_TYPE = "X.509"

# Aliases are written with a 2-byte length, certificates with a 4-byte signed length
_MAX_ALIAS_LENGTH = 0xFFFF
_MAX_PAYLOAD_LENGTH = 0x7FFFFFFF


class CertificateEntry:
    """A trusted certificate entry: an X.509 certificate the owner of the keystore trusts without a private key.

    Entries are immutable once created.
    """

    def __init__(self, alias: str, encoding: bytes, creation_timestamp: int = 0) -> None:
        if not alias:
            raise EncodingFailureError("Certificate entries require a non-empty alias")
        if len(alias.encode("utf-8", "surrogatepass")) > _MAX_ALIAS_LENGTH:
            raise EncodingFailureError(f"Alias is too long to be stored in a keystore: {alias[:32]}...")
        if not encoding:
            raise EncodingFailureError(f'Certificate for alias "{alias}" is empty')
        if len(encoding) > _MAX_PAYLOAD_LENGTH:
            raise EncodingFailureError(f'Certificate for alias "{alias}" is too large ({len(encoding)} bytes)')
        if not 0 <= creation_timestamp < 2 ** 63:
            raise EncodingFailureError(f"Creation timestamp must be a positive 64 bits value: {creation_timestamp}")

        # JKS aliases are case-insensitive and Java lower-cases them when loading the keystore
        self._alias = alias.lower()
        self._encoding = bytes(encoding)
        self._creation_timestamp = creation_timestamp

    @property
    def alias(self) -> str:
        return self._alias

    @property
    def encoding(self) -> bytes:
        """The DER-encoded X.509 certificate.
        """
        return self._encoding

    @property
    def creation_timestamp(self) -> int:
        """Milliseconds since the UNIX epoch.
        """
        return self._creation_timestamp

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CertificateEntry):
            return False
        return (self.alias, self.encoding, self.creation_timestamp) == (
            other.alias,
            other.encoding,
            other.creation_timestamp,
        )

    def __hash__(self) -> int:
        return hash((self.alias, self.encoding, self.creation_timestamp))

    def __repr__(self) -> str:
        return f"CertificateEntry(alias={self.alias!r}, {len(self.encoding)} bytes, {self.creation_timestamp})"

    def to_trusted_cert_entry(self) -> jks.TrustedCertEntry:
        # TrustedCertEntry.new() would stamp the entry with the current time
        return jks.TrustedCertEntry(
            store_type="jks",
            alias=self.alias,
            timestamp=self.creation_timestamp,
            type=_X509_CERTIFICATE_TYPE,
            cert=self.encoding,
        )


class Keystore:
    """An in-memory Java KeyStore (JKS) made of trusted certificate entries only.

    A keystore is built once, encoded once and then discarded; entries can be added but never replaced or removed.
    The encoder never touches the file system, writing the result is up to the caller.
    """

    def __init__(self) -> None:
        self._entries: List[CertificateEntry] = []

    @classmethod
    def from_certificates(
        cls, aliased_certificates: Iterable[Tuple[str, bytes]], creation_timestamp: int = 0
    ) -> "Keystore":
        keystore = cls()
        for alias, certificate_der in aliased_certificates:
            keystore.add_trusted_certificate(alias, certificate_der, creation_timestamp)
        return keystore

    @property
    def entries(self) -> List[CertificateEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def add_trusted_certificate(
        self, alias: str, certificate_der: bytes, creation_timestamp: int = 0
    ) -> CertificateEntry:
        entry = CertificateEntry(alias, certificate_der, creation_timestamp)
        for existing_entry in self._entries:
            if existing_entry.alias == entry.alias:
                raise DuplicateAliasError(f'Alias "{entry.alias}" is already used in the keystore')

        self._entries.append(entry)
        return entry

    def to_jks_keystore(self) -> jks.KeyStore:
        try:
            return jks.KeyStore.new("jks", [entry.to_trusted_cert_entry() for entry in self._entries])
        except DuplicateAliasException as e:
            raise DuplicateAliasError(str(e))

    def encode(self, password: str = "") -> bytes:
        """Return the keystore as JKS bytes, terminated by the SHA-1 digest used by readers to check its integrity.

        The password is only used for the digest; trusted certificate entries are not encrypted.
        """
        key_store = self.to_jks_keystore()
        try:
            keystore_bytes = key_store.saves(password)
        except (KeystoreException, struct.error) as e:
            raise EncodingFailureError(f"Could not encode the keystore: {e}")

        logging.debug(f"Encoded keystore with {len(self._entries)} entries ({len(keystore_bytes)} bytes)")
        return keystore_bytes
