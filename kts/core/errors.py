from fastapi import status


class RegistryError(Exception):
    """Permanent rejection of a single registry request; never retried by the service."""

    code = "RegistryError"
    message = "Registry operation rejected"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message

    def as_dict(self) -> dict:
        return {"error": self.code, "detail": self.message}


class DeviceAlreadyRegistered(RegistryError):
    code = "DeviceAlreadyRegistered"
    message = "This device is already registered"
    status_code = status.HTTP_409_CONFLICT


class InvalidDeviceOwner(RegistryError):
    code = "InvalidDeviceOwner"
    message = "You are not the owner of this device"
    status_code = status.HTTP_403_FORBIDDEN


class DailyUsageAlreadyUploaded(RegistryError):
    code = "DailyUsageAlreadyUploaded"
    message = "Daily usage for this day has already been uploaded"
    status_code = status.HTTP_409_CONFLICT


class InvalidProcessNameLength(RegistryError):
    code = "InvalidProcessNameLength"
    message = "Process name exceeds maximum length"
    status_code = 422


class InvalidTopProcessesArraySize(RegistryError):
    code = "InvalidTopProcessesArraySize"
    message = "Top processes array must contain exactly 5 entries"
    status_code = 422


class InvalidDeviceNameLength(RegistryError):
    code = "InvalidDeviceNameLength"
    message = "Device name exceeds maximum length"
    status_code = 422


class CertificateAlreadyIssued(RegistryError):
    code = "CertificateAlreadyIssued"
    message = "Certificate has already been issued for this device"
    status_code = status.HTTP_409_CONFLICT


NftAlreadyMinted = CertificateAlreadyIssued


class DeviceNotRegistered(RegistryError):
    code = "DeviceNotRegistered"
    message = "Device is not registered"
    status_code = status.HTTP_404_NOT_FOUND


class UsageRecordNotFound(RegistryError):
    code = "UsageRecordNotFound"
    message = "No usage record for this device and day"
    status_code = status.HTTP_404_NOT_FOUND


class AddressOccupied(Exception):
    """Raised by the record store when a create targets an existing address."""

    def __init__(self, address: str):
        super().__init__(f"Address already occupied: {address}")
        self.address = address


class SeedLimitExceeded(ValueError):
    pass


class InvalidRecordLayout(ValueError):
    pass
