from app.models.tenant import Tenant
from app.models.activity import Activity, CapacityTemplateEntry
from app.models.capacity import CapacityOverride, OverrideSource
from app.models.package_tour import PackageTour, PackageTourActivity
from app.models.reservation import Reservation, ReservationStatus, ACTIVE_STATUSES
from app.models.license import License
from app.models.notification import Notification
from app.models.storefront import StorefrontOrderReceipt
