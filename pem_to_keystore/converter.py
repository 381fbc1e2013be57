import logging
import os
import stat
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import List, Tuple

from pem_to_keystore.errors import InvalidPemError
from pem_to_keystore.keystore import Keystore
from pem_to_keystore.options import KeystoreOptions
from pem_to_keystore.pem_loader import load_pem_certificates


# Extensions picked up when scanning the folders listed in KeystoreOptions.ca_cert_dirs
CA_CERT_DIR_EXTENSIONS = (".pem", ".crt")


def derive_aliases(base_alias: str, certificates_count: int) -> List[str]:
    """Return one alias per certificate found in a single file.

    A file with one certificate uses the base alias as is; otherwise the n-th certificate (0-based) of the file gets
    "<base_alias>-<n>". The result only depends on the file name and the certificates' order in the file.
    """
    if certificates_count == 1:
        return [base_alias]
    return [f"{base_alias}-{index}" for index in range(certificates_count)]


def alias_for_path(pem_path: Path) -> str:
    # root-ca.pem -> root-ca
    return pem_path.stem.lower()


def _list_ca_cert_dir(ca_cert_dir: Path) -> List[Path]:
    if not ca_cert_dir.is_dir():
        raise FileNotFoundError(f"CA certificates folder not found: {ca_cert_dir}")
    return sorted(
        path for path in ca_cert_dir.iterdir() if path.is_file() and path.suffix.lower() in CA_CERT_DIR_EXTENSIONS
    )


def resolve_ca_cert_files(options: KeystoreOptions) -> List[Tuple[str, Path]]:
    """Return the (base alias, PEM path) of every input file, in the order their entries go in the keystore.
    """
    aliased_paths = [(alias, path) for alias, path in options.ca_cert_aliases.items()]
    aliased_paths.extend((alias_for_path(path), path) for path in options.ca_cert_files)
    for ca_cert_dir in options.ca_cert_dirs:
        aliased_paths.extend((alias_for_path(path), path) for path in _list_ca_cert_dir(ca_cert_dir))
    return aliased_paths


def build_keystore(options: KeystoreOptions) -> Keystore:
    """Load every input file and add its certificates to a new keystore.
    """
    keystore = Keystore()
    for base_alias, pem_path in resolve_ca_cert_files(options):
        certificates = load_pem_certificates(pem_path)
        if not certificates:
            raise InvalidPemError(f"No certificate found in {pem_path}")

        for alias, certificate_der in zip(derive_aliases(base_alias, len(certificates)), certificates):
            entry = keystore.add_trusted_certificate(alias, certificate_der, options.creation_timestamp)
            logging.info(f'Adding certificate from {pem_path} as "{entry.alias}"')

    return keystore


def _get_keystore_file_mode(keystore_path: Path) -> int:
    # Keep the mode of the keystore being replaced, otherwise use the default mode for new files
    if keystore_path.exists():
        return stat.S_IMODE(keystore_path.stat().st_mode)
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def write_keystore_file(keystore_bytes: bytes, keystore_path: Path) -> None:
    """Write the keystore next to its destination then move it in place, so a failed run never leaves a partial file.
    """
    keystore_dir = keystore_path.parent
    keystore_dir.mkdir(parents=True, exist_ok=True)

    keystore_temp_file = NamedTemporaryFile(dir=keystore_dir, prefix=f".{keystore_path.name}.", delete=False)
    try:
        keystore_temp_file.write(keystore_bytes)
        keystore_temp_file.close()
        os.chmod(keystore_temp_file.name, _get_keystore_file_mode(keystore_path))
        os.replace(keystore_temp_file.name, keystore_path)
    except BaseException:
        keystore_temp_file.close()
        os.remove(keystore_temp_file.name)
        raise


def create_keystore(options: KeystoreOptions) -> Path:
    """Convert the PEM CA certificates listed in the options into a JKS file written at options.keystore_path.

    Any I/O, PEM or alias error is raised before the keystore file is created or modified.
    """
    if not options.has_inputs():
        raise ValueError("No CA certificate file to add to the keystore")

    keystore = build_keystore(options)
    keystore_bytes = keystore.encode(options.password)
    write_keystore_file(keystore_bytes, options.keystore_path)

    logging.info(f"Wrote {len(keystore)} certificate(s) to {options.keystore_path}")
    return options.keystore_path
