from app.schemas.common import PaginatedResponse, ErrorResponse, OverbookedError, GroupFailureError
from app.schemas.activity import (
    Activity, ActivityCreate, TemplateEntry, TemplateEntryCreate, Override, OverrideUpsert,
)
from app.schemas.availability import SlotAvailability, AvailabilityResponse, DayStats, MonthlyStatsResponse
from app.schemas.reservation import (
    Reservation, ReservationCreate, ReservationItem, GroupReservationCreate,
    QuantityUpdate, StatusUpdate, GroupMember, ReservationGroup,
    GroupedReservationsResponse, GroupCancelResponse,
)
from app.schemas.package_tour import (
    PackageTour, PackageTourCreate, PackageTourMember, PackageTourMemberCreate, PackageReservationCreate,
)
from app.schemas.storefront import StorefrontOrder, StorefrontIntakeResponse
from app.schemas.license import License, LicenseUpdate
