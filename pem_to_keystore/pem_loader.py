import logging
import re
from pathlib import Path
from typing import List, Union

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives.serialization import Encoding
from cryptography.x509 import load_pem_x509_certificate

from pem_to_keystore.errors import InvalidPemError


_PEM_BLOCK_REGEX = re.compile(rb"-----BEGIN ([A-Z0-9 ]+)-----\r?\n(.*?)-----END \1-----", re.DOTALL)

_CERTIFICATE_LABEL = b"CERTIFICATE"
_BEGIN_CERTIFICATE_MARKER = b"-----BEGIN CERTIFICATE-----"


def parse_pem_certificates(pem_data: bytes, source: str = "<bytes>") -> List[bytes]:
    """Decode every CERTIFICATE block of the supplied PEM data and return each certificate as DER bytes.

    Blocks are returned in the order they appear, so a chain stays leaf first. Blocks with another label (private
    keys, CRLs, etc.) are skipped.
    """
    all_certificates_as_der = []
    for block_index, match in enumerate(_PEM_BLOCK_REGEX.finditer(pem_data)):
        label = match.group(1)
        if label != _CERTIFICATE_LABEL:
            logging.debug(f"Skipping {label.decode('ascii')} block #{block_index} in {source}")
            continue

        try:
            parsed_cert = load_pem_x509_certificate(match.group(0), default_backend())
        except ValueError as e:
            raise InvalidPemError(f"Could not parse certificate block #{block_index} in {source}: {e}")

        all_certificates_as_der.append(parsed_cert.public_bytes(Encoding.DER))

    # A BEGIN marker without its END marker is never matched by the regex
    certificate_markers_count = pem_data.count(_BEGIN_CERTIFICATE_MARKER)
    if certificate_markers_count != len(all_certificates_as_der):
        raise InvalidPemError(
            f"Found {certificate_markers_count} certificate markers in {source} but only "
            f"{len(all_certificates_as_der)} complete certificate blocks"
        )

    return all_certificates_as_der


def load_pem_certificates(pem_path: Union[str, Path]) -> List[bytes]:
    """Read a PEM file and return the DER encoding of each certificate it contains, in file order.
    """
    pem_path = Path(pem_path)
    pem_data = pem_path.read_bytes()
    certificates = parse_pem_certificates(pem_data, str(pem_path))
    logging.debug(f"Loaded {len(certificates)} certificate(s) from {pem_path}")
    return certificates
