class PemToKeystoreError(Exception):
    pass


class InvalidPemError(PemToKeystoreError, ValueError):
    """A PEM block could not be decoded into an X.509 certificate.
    """


class DuplicateAliasError(PemToKeystoreError, KeyError):
    """Two entries of the same keystore resolved to the same (case-insensitive) alias.
    """

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return str(self.args[0]) if self.args else ""


class EncodingFailureError(PemToKeystoreError, ValueError):
    pass


class InvalidKeystoreError(PemToKeystoreError, ValueError):
    pass


class KeystoreIntegrityError(PemToKeystoreError):
    """The keystore's SHA-1 digest does not match the supplied password.
    """
