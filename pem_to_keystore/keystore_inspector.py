from pathlib import Path
from typing import List, Union

import jks
import yaml
from jks.util import KeystoreException, KeystoreSignatureException

from pem_to_keystore.certificate_utils import get_canonical_subject_name, get_hex_fingerprint, parse_der_certificate
from pem_to_keystore.errors import InvalidKeystoreError, KeystoreIntegrityError


class TrustedCertificateRecord:
    """A trusted certificate found in an existing keystore.

    This is what gets displayed when listing a keystore, similar to what `keytool -list` prints.
    """

    def __init__(self, alias: str, subject_name: str, hex_fingerprint: str, certificate_der: bytes) -> None:
        self.alias = alias
        self.subject_name = subject_name
        self.hex_fingerprint = hex_fingerprint
        self.certificate_der = certificate_der

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TrustedCertificateRecord):
            return False
        return self.__dict__ == other.__dict__

    def __hash__(self) -> int:
        return hash(self.alias + self.hex_fingerprint)

    @classmethod
    def from_trusted_cert_entry(cls, alias: str, entry: jks.TrustedCertEntry) -> "TrustedCertificateRecord":
        parsed_cert = parse_der_certificate(entry.cert)
        return cls(alias, get_canonical_subject_name(parsed_cert), get_hex_fingerprint(parsed_cert), entry.cert)


def loads_keystore(keystore_bytes: bytes, password: str = "") -> jks.KeyStore:
    """Parse JKS data with pyjks, checking its digest against the supplied password.
    """
    try:
        return jks.KeyStore.loads(keystore_bytes, password)
    except KeystoreSignatureException:
        raise KeystoreIntegrityError("Keystore digest mismatch; incorrect keystore password or corrupted keystore?")
    except KeystoreException as e:
        raise InvalidKeystoreError(f"Could not parse keystore: {e}")


def load_keystore(keystore_path: Union[str, Path], password: str = "") -> jks.KeyStore:
    with open(keystore_path, mode="rb") as keystore_file:
        keystore_bytes = keystore_file.read()
    return loads_keystore(keystore_bytes, password)


def verify_keystore_integrity(keystore_bytes: bytes, password: str = "") -> bool:
    try:
        loads_keystore(keystore_bytes, password)
    except KeystoreIntegrityError:
        return False
    return True


def list_trusted_certificates(key_store: jks.KeyStore) -> List[TrustedCertificateRecord]:
    # Sort by alias so the listing is easy to diff
    return [
        TrustedCertificateRecord.from_trusted_cert_entry(alias, entry)
        for alias, entry in sorted(key_store.certs.items())
    ]


# YAML serialization helpers
def _represent_trusted_certificate_record(dumper: yaml.Dumper, record: TrustedCertificateRecord) -> yaml.Node:
    final_dict = {"alias": record.alias, "subject_name": record.subject_name, "fingerprint": record.hex_fingerprint}
    return dumper.represent_dict(final_dict.items())


yaml.add_representer(TrustedCertificateRecord, _represent_trusted_certificate_record)
