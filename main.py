from os import environ
from pathlib import Path
from typing import Dict, List, Mapping, Optional
import argparse
import logging
import sys

import yaml

from pem_to_keystore import __version__
from pem_to_keystore.converter import create_keystore
from pem_to_keystore.errors import PemToKeystoreError
from pem_to_keystore.keystore_inspector import list_trusted_certificates, load_keystore
from pem_to_keystore.options import KeystoreOptions


def _parse_ca_aliases(raw_ca_aliases: List[str]) -> Dict[str, Path]:
    ca_aliases = {}
    for raw_ca_alias in raw_ca_aliases:
        alias, separator, path = raw_ca_alias.partition("=")
        if not separator or not alias or not path:
            raise ValueError(f"Expected ALIAS=PATH, got {raw_ca_alias}")
        ca_aliases[alias] = Path(path)
    return ca_aliases


def _get_source_date_epoch_timestamp(env: Mapping[str, str]) -> Optional[int]:
    # Reproducible builds convention; SOURCE_DATE_EPOCH is in seconds
    source_date_epoch = env.get("SOURCE_DATE_EPOCH")
    if not source_date_epoch:
        return None
    return int(source_date_epoch) * 1000


def build_options(args: argparse.Namespace, env: Mapping[str, str] = environ) -> KeystoreOptions:
    """Merge the options from the --config YAML file (if any) with the ones supplied on the command line.
    """
    if args.config:
        options = KeystoreOptions.from_yaml(args.config)
    else:
        if not args.keystore:
            raise ValueError("--keystore is required when no --config file is supplied")
        options = KeystoreOptions([], args.keystore)

    # Command line flags extend or override the config file
    if args.keystore:
        options.keystore_path = Path(args.keystore)
    if args.password is not None:
        options.password = args.password

    options.ca_cert_files.extend(Path(path) for path in args.ca_file)
    options.ca_cert_dirs.extend(Path(path) for path in args.ca_dir)
    options.ca_cert_aliases.update(_parse_ca_aliases(args.ca_alias))

    if args.timestamp is not None:
        options.creation_timestamp = args.timestamp
    elif not args.config:
        source_date_epoch_timestamp = _get_source_date_epoch_timestamp(env)
        if source_date_epoch_timestamp is not None:
            options.creation_timestamp = source_date_epoch_timestamp

    return options


def convert_certificates(options: KeystoreOptions) -> None:
    """Convert PEM CA certificates into a JKS keystore.
    """
    keystore_path = create_keystore(options)
    print(f"Keystore written to {keystore_path}")


def list_keystore(keystore_path: Path, password: str) -> None:
    """List the trusted certificates of an existing JKS keystore as YAML.
    """
    key_store = load_keystore(keystore_path, password)
    records = list_trusted_certificates(key_store)
    print(yaml.dump(records, default_flow_style=False), end="")


def get_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Convert PEM CA certificates into a Java KeyStore (JKS).")
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "--ca-file", action="append", default=[], metavar="PATH", help="PEM file with CA certificate(s) to trust."
    )
    parser.add_argument(
        "--ca-dir", action="append", default=[], metavar="DIR", help="Folder of .pem/.crt CA certificate files."
    )
    parser.add_argument(
        "--ca-alias",
        action="append",
        default=[],
        metavar="ALIAS=PATH",
        help="PEM file with CA certificate(s) to trust, stored under the supplied alias.",
    )
    parser.add_argument("--keystore", metavar="PATH", help="Where to write the keystore.")
    parser.add_argument("--password", help="Password for the keystore's integrity digest (default: empty).")
    parser.add_argument(
        "--timestamp", type=int, metavar="MILLISECONDS", help="Creation date of the entries, in ms since the epoch."
    )
    parser.add_argument("--config", metavar="YAML", help="YAML file with the keystore options.")
    parser.add_argument("--list", metavar="KEYSTORE", help=str(list_keystore.__doc__))
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = get_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(levelname)s: %(message)s")

    try:
        if args.list:
            if args.ca_file or args.ca_dir or args.ca_alias or args.config:
                raise ValueError("Cannot combine --list with other options.")
            list_keystore(Path(args.list), args.password or "")
        else:
            convert_certificates(build_options(args))
    except (PemToKeystoreError, OSError, ValueError, yaml.YAMLError) as e:
        logging.error(str(e))
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
