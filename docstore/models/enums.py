from enum import Enum


class ProviderKind(str, Enum):
    LOCAL = "local"
    WASABI = "wasabi"
    AWS = "aws"

    @property
    def label(self) -> str:
        return PROVIDER_LABELS[self]

    @property
    def is_object_store(self) -> bool:
        return self is not ProviderKind.LOCAL


PROVIDER_LABELS = {
    ProviderKind.LOCAL: "Local",
    ProviderKind.WASABI: "Wasabi",
    ProviderKind.AWS: "AWS S3",
}


class OwnerType(str, Enum):
    STAFF_MEMBER = "staff_member"
    COMPANY = "company"
    ORGANIZATION = "organization"


class UrlType(str, Enum):
    PERMANENT = "permanent"
    TEMPORARY = "temporary"
