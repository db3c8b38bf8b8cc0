class Error(Exception):
    pass


class InvalidKeyPathError(Error):
    pass


class RegistryKeyNotFoundError(Error):
    pass


class RegistryValueNotFoundError(Error):
    pass


class BackendError(Error):
    pass


class UnsupportedFormatError(Error):
    pass
