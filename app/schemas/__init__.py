# File: app/schemas/__init__.py
from .common import CamelModel, MessageResponse
from .registrant import (
    Registrant, RegistrantUpdate, RegistrationResponse, StatusChange, RegistrantStats,
    NotifyRequest, DeliveryReport, NotifyResponse, ReminderResponse,
)
from .ticket import UpgradeRequest, UpgradeResponse, ScanRequest, TicketInfo, ValidateResponse
from .coupon import (
    Coupon, CouponCreate, CouponGenerate, CouponList, CouponLog,
    CouponValidateRequest, CouponValidateResponse,
)
from .otp import OtpSendRequest, OtpVerifyRequest, ExistingRegistration, EmailCheckResponse, OtpVerifyResponse
from .registration_config import FormFieldSpec, RegistrationConfig, RegistrationConfigIn
