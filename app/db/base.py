from app.db.session import Base
from app.models.tenant import Tenant
from app.models.activity import Activity, CapacityTemplateEntry
from app.models.capacity import CapacityOverride
from app.models.package_tour import PackageTour, PackageTourActivity
from app.models.reservation import Reservation
from app.models.license import License
from app.models.notification import Notification
from app.models.storefront import StorefrontOrderReceipt
