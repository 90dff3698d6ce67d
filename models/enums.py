from enum import Enum


class BaseStrEnum(str, Enum):
    """
    Base enum that serializes cleanly to a string
    and provides a .list() method for UI dropdowns.
    """

    def __str__(self):
        return str(self.value)

    @classmethod
    def list(cls):
        return [item.value for item in cls]

    @classmethod
    def parse(cls, value):
        """Return the member for `value`, or None when it is not a valid value."""
        try:
            return cls(value)
        except ValueError:
            return None


# -----------------------------------------------------
# PRIMARY ROLE
# -----------------------------------------------------
class PrimaryRole(BaseStrEnum):
    """Single authoritative role stored on the practitioner profile."""

    practitioner = "practitioner"
    admin = "admin"


# -----------------------------------------------------
# SUBSCRIPTION TIER
# -----------------------------------------------------
class SubscriptionTier(BaseStrEnum):
    """Single authoritative subscription tier on the practitioner profile."""

    free = "free"
    premium = "premium"


# -----------------------------------------------------
# CONTENT ACCESS LEVEL
# -----------------------------------------------------
class AccessLevel(BaseStrEnum):
    """Minimum entitlement a review requires to be visible."""

    public = "public"
    free = "free"
    premium = "premium"
    admin = "admin"


# -----------------------------------------------------
# REVIEW STATUS
# -----------------------------------------------------
class ReviewStatus(BaseStrEnum):
    """Publication lifecycle of a review."""

    draft = "draft"
    scheduled = "scheduled"
    published = "published"
    archived = "archived"  # terminal


# -----------------------------------------------------
# COMMUNITY POST STATUS
# -----------------------------------------------------
class PostStatus(BaseStrEnum):
    draft = "draft"
    published = "published"
    scheduled = "scheduled"
    hidden = "hidden"


class VisibilityLevel(BaseStrEnum):
    public = "public"
    hidden = "hidden"


class PostPublishPolicy(BaseStrEnum):
    """What the admin editor asked for when saving a review's post."""

    draft = "draft"
    publish_now = "publish_now"
    publish_with_review = "publish_with_review"
    hidden = "hidden"
    scheduled = "scheduled"


class PostType(BaseStrEnum):
    text = "text"
    image = "image"
    video = "video"
    poll = "poll"
    link = "link"


class PostCategory(BaseStrEnum):
    discussao_geral = "discussao-geral"
    duvida_clinica = "duvida-clinica"
    caso_clinico = "caso-clinico"
    evidencia_cientifica = "evidencia-cientifica"
    tecnologia_saude = "tecnologia-saude"
    carreira_medicina = "carreira-medicina"
    bem_estar_medico = "bem-estar-medico"
    review = "review"


# -----------------------------------------------------
# PUBLICATION HISTORY ACTION
# -----------------------------------------------------
class PublicationAction(BaseStrEnum):
    created = "created"
    scheduled = "scheduled"
    published = "published"
    unpublished = "unpublished"
    archived = "archived"


class EntityType(BaseStrEnum):
    review = "review"
    community_post = "community_post"


# -----------------------------------------------------
# ADMIN EDITS
# -----------------------------------------------------
class CellDataSource(BaseStrEnum):
    """Which underlying field or table a user-table cell edit writes to."""

    primary_role = "primary_role"
    subscription_tier = "subscription_tier"
    additional_role_grant = "additional_role_grant"
    additional_role_revoke = "additional_role_revoke"


class BulkOperation(BaseStrEnum):
    grant_admin = "grant_admin"
    remove_admin = "remove_admin"
    update_subscription_tier = "update_subscription_tier"


class AdminAction(BaseStrEnum):
    """Operation identifiers accepted by the admin action surface."""

    promote = "promote"
    demote = "demote"
    assign_role = "assign_role"
    revoke_role = "revoke_role"
    publish = "publish"
    schedule = "schedule"
    hide = "hide"
    unhide = "unhide"
