from .registrant import registrants, for_role, for_model
from .ticket import ticket
from .coupon import coupon, coupon_log
from .registration_config import registration_config

__all__ = ["registrants", "for_role", "for_model", "ticket", "coupon", "coupon_log", "registration_config"]
