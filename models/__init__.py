# -------------------------
# Enums
# -------------------------
from .enums import (
    PrimaryRole,
    SubscriptionTier,
    AccessLevel,
    ReviewStatus,
    PostStatus,
    VisibilityLevel,
    PostPublishPolicy,
    PostType,
    PostCategory,
    PublicationAction,
    EntityType,
    CellDataSource,
    BulkOperation,
    AdminAction,
)

# -------------------------
# User / Entitlement Models
# -------------------------
from .user import (
    RoleGrant,
    ClaimsMirror,
    User,
    EffectiveEntitlement,
    ClaimsSyncStatus,
    UserListItem,
    SubscriptionStatusView,
    CellUpdateContext,
    CellUpdateResult,
)

# -------------------------
# Review / Community Post Models
# -------------------------
from .review import (
    Review,
    CommunityPost,
    CommunityPostFields,
    ReviewTransitionResult,
    PostTransitionResult,
    PublicationEvent,
    DueTransition,
)

# -------------------------
# Bulk Operation Models
# -------------------------
from .bulk import (
    BulkFailure,
    BulkSummary,
    BulkOperationResult,
    BulkOperationParams,
    BulkOperationRequest,
)

# -------------------------
# Admin Request Models
# -------------------------
from .admin import (
    AdminActionRequest,
    CellUpdateRequest,
    SubscriptionAdjustRequest,
    SubscriptionEndRequest,
    ScheduleRequest,
    CommunityPostCreateRequest,
)
