import datetime
import ipaddress
from pathlib import Path
from typing import Dict, Optional, Tuple

import pytest
from cryptography import x509
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import Encoding, NoEncryption, PrivateFormat
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID


ROOT_CA = "root-ca"
INTERMEDIATE_CA = "intermediate-ca"
SERVER_FROM_ROOT_CA = "server-from-root"
SERVER_FROM_INTERMEDIATE_CA = "server-from-intermediate"
OTHER_CA = "other-ca"


class TestPki:
    """A throwaway PKI written to a folder as <name>.pem and <name>-key.pem files.
    """

    __test__ = False

    def __init__(self, folder: Path) -> None:
        self.folder = folder
        self.certificates: Dict[str, x509.Certificate] = {}
        self._keys: Dict[str, ec.EllipticCurvePrivateKey] = {}

    def cert_file(self, name: str) -> Path:
        return self.folder / f"{name}.pem"

    def key_file(self, name: str) -> Path:
        return self.folder / f"{name}-key.pem"

    def der(self, name: str) -> bytes:
        return self.certificates[name].public_bytes(Encoding.DER)

    def pem(self, name: str) -> bytes:
        return self.certificates[name].public_bytes(Encoding.PEM)

    def issue(self, name: str, common_name: str, issuer_name: Optional[str], is_ca: bool) -> x509.Certificate:
        private_key = ec.generate_private_key(ec.SECP256R1(), default_backend())
        subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
        if issuer_name is None:
            issuer_subject, issuer_key = subject, private_key
        else:
            issuer_subject, issuer_key = self.certificates[issuer_name].subject, self._keys[issuer_name]

        now = datetime.datetime.now(datetime.timezone.utc)
        builder = (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(issuer_subject)
            .public_key(private_key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now - datetime.timedelta(days=1))
            .not_valid_after(now + datetime.timedelta(days=30))
            .add_extension(x509.BasicConstraints(ca=is_ca, path_length=None), critical=True)
        )
        if is_ca:
            builder = builder.add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    content_commitment=False,
                    key_encipherment=False,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=True,
                    crl_sign=True,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
        else:
            builder = builder.add_extension(
                x509.SubjectAlternativeName(
                    [x509.DNSName("localhost"), x509.IPAddress(ipaddress.ip_address("127.0.0.1"))]
                ),
                critical=False,
            ).add_extension(x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]), critical=False)

        certificate = builder.sign(issuer_key, hashes.SHA256(), default_backend())
        self.certificates[name] = certificate
        self._keys[name] = private_key

        self.cert_file(name).write_bytes(certificate.public_bytes(Encoding.PEM))
        self.key_file(name).write_bytes(
            private_key.private_bytes(Encoding.PEM, PrivateFormat.PKCS8, NoEncryption())
        )
        return certificate

    def write_chain(self, *names: str) -> Tuple[Path, Path]:
        """Write the PEM chain of the supplied certificates (leaf first) and return it with the leaf's key file.
        """
        chain_path = self.folder / f"{names[0]}-chain.pem"
        chain_path.write_bytes(b"".join(self.pem(name) for name in names))
        return chain_path, self.key_file(names[0])


@pytest.fixture(scope="session")
def pki(tmp_path_factory: pytest.TempPathFactory) -> TestPki:
    test_pki = TestPki(tmp_path_factory.mktemp("pki"))
    test_pki.issue(ROOT_CA, "Test Root CA", None, is_ca=True)
    test_pki.issue(INTERMEDIATE_CA, "Test Intermediate CA", ROOT_CA, is_ca=True)
    test_pki.issue(SERVER_FROM_ROOT_CA, "localhost", ROOT_CA, is_ca=False)
    test_pki.issue(SERVER_FROM_INTERMEDIATE_CA, "localhost", INTERMEDIATE_CA, is_ca=False)
    test_pki.issue(OTHER_CA, "Unrelated Root CA", None, is_ca=True)
    return test_pki
