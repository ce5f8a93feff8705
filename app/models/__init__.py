from .base import BaseModel
from .registrant import RegistrantMixin, Visitor, Exhibitor, Partner, Speaker, Awardee
from .ticket import Ticket
from .coupon import Coupon, CouponLog
from .registration_config import RegistrationConfig
