from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import yaml


PathType = Union[str, Path]


class KeystoreOptions:
    """What to put in the keystore and where to write it.

    Certificates are taken from, in this order: ca_cert_aliases (an alias to PEM file mapping), ca_cert_files, and
    the PEM files found in each of ca_cert_dirs. The order determines the order of the entries in the keystore.
    """

    def __init__(
        self,
        ca_cert_files: Sequence[PathType],
        keystore_path: PathType,
        password: str = "",
        creation_timestamp: int = 0,
        ca_cert_dirs: Optional[Sequence[PathType]] = None,
        ca_cert_aliases: Optional[Dict[str, PathType]] = None,
    ) -> None:
        self.ca_cert_files: List[Path] = [Path(path) for path in ca_cert_files]
        self.keystore_path = Path(keystore_path)
        self.password = password
        # Milliseconds since the epoch; a fixed value keeps the output reproducible
        self.creation_timestamp = creation_timestamp
        self.ca_cert_dirs: List[Path] = [Path(path) for path in ca_cert_dirs] if ca_cert_dirs else []
        self.ca_cert_aliases: Dict[str, Path] = (
            {alias: Path(path) for alias, path in ca_cert_aliases.items()} if ca_cert_aliases else {}
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KeystoreOptions):
            return False
        return self.__dict__ == other.__dict__

    def __repr__(self) -> str:
        # Never print the password
        return (
            f"KeystoreOptions(ca_cert_files={self.ca_cert_files}, keystore_path={self.keystore_path}, "
            f"ca_cert_dirs={self.ca_cert_dirs}, ca_cert_aliases={self.ca_cert_aliases}, "
            f"creation_timestamp={self.creation_timestamp})"
        )

    @classmethod
    def from_yaml(cls, yaml_file_path: PathType) -> "KeystoreOptions":
        """Load the options from a YAML file; relative paths are resolved against the file's folder.
        """
        yaml_file_path = Path(yaml_file_path)
        with open(yaml_file_path, mode="r") as options_file:
            options_dict = yaml.safe_load(options_file)

        return cls.from_dict(options_dict or {}, yaml_file_path.parent)

    @classmethod
    def from_dict(cls, options_dict: Dict[str, Any], base_path: Optional[Path] = None) -> "KeystoreOptions":
        if not isinstance(options_dict, dict):
            raise ValueError(f"Expected a mapping of options, got {type(options_dict).__name__}")

        def resolve(path: PathType) -> Path:
            path = Path(path)
            if base_path is not None and not path.is_absolute():
                return base_path / path
            return path

        if "keystore_path" not in options_dict:
            raise ValueError("Missing keystore_path in options")

        password = options_dict.get("password")
        creation_timestamp = options_dict.get("creation_timestamp")
        return cls(
            ca_cert_files=[resolve(path) for path in options_dict.get("ca_cert_files") or []],
            keystore_path=resolve(options_dict["keystore_path"]),
            # An empty "password:" entry is loaded as None by YAML
            password=str(password) if password is not None else "",
            creation_timestamp=int(creation_timestamp) if creation_timestamp is not None else 0,
            ca_cert_dirs=[resolve(path) for path in options_dict.get("ca_cert_dirs") or []],
            ca_cert_aliases={
                str(alias): resolve(path) for alias, path in (options_dict.get("ca_cert_aliases") or {}).items()
            },
        )

    def has_inputs(self) -> bool:
        return bool(self.ca_cert_files or self.ca_cert_dirs or self.ca_cert_aliases)
