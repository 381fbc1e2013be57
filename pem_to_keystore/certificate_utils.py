from binascii import hexlify
from typing import List

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives.hashes import SHA256
from cryptography.x509 import Certificate, Name, NameOID, ObjectIdentifier, load_der_x509_certificate


# Name attributes to try, in order, when picking a display name for a certificate
_DISPLAY_NAME_OIDS = [NameOID.COMMON_NAME, NameOID.ORGANIZATIONAL_UNIT_NAME, NameOID.ORGANIZATION_NAME]


def _get_values_for_oid(name_field: Name, name_oid: ObjectIdentifier) -> List[str]:
    return [str(attr.value) for attr in name_field.get_attributes_for_oid(name_oid)]


def parse_der_certificate(certificate_der: bytes) -> Certificate:
    return load_der_x509_certificate(certificate_der, default_backend())


def get_canonical_subject_name(certificate: Certificate) -> str:
    """Return the CN of the certificate's subject, or its OU, or its O, or the whole subject as RFC 4514 text.
    """
    name_field = certificate.subject
    for name_oid in _DISPLAY_NAME_OIDS:
        values = _get_values_for_oid(name_field, name_oid)
        if values:
            # Multiple values for the same attribute are not supported; the first one wins
            return values[0].strip()

    return name_field.rfc4514_string().strip()


def get_hex_fingerprint(certificate: Certificate) -> str:
    """The SHA-256 fingerprint of the certificate as a hex string.
    """
    return hexlify(certificate.fingerprint(SHA256())).decode("ascii")
