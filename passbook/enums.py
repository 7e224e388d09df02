import enum


@enum.unique
class EntitlementKind(str, enum.Enum):
    ERA = "era"
    PASS = "pass"


@enum.unique
class AccessMethod(str, enum.Enum):
    PURCHASE = "purchase"
    VOUCHER = "voucher"
    EXCLUSIVE = "exclusive"
    PASSES = "passes"
    FREE = "free"


@enum.unique
class AccountKind(str, enum.Enum):
    USER = "user"
    GUEST = "guest"
    SYSTEM = "system"
    AI = "ai"


@enum.unique
class PassSource(str, enum.Enum):
    ACHIEVEMENT = "achievement"
    REFERRAL = "referral"
    BUNDLE = "bundle"
    ADMIN = "admin"
    VOUCHER = "voucher"


@enum.unique
class DurationUnit(str, enum.Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"

    @property
    def milliseconds(self) -> int:
        # Months are a fixed 30 days, not calendar months.
        return {
            DurationUnit.DAY: 86_400_000,
            DurationUnit.WEEK: 7 * 86_400_000,
            DurationUnit.MONTH: 30 * 86_400_000,
        }[self]


@enum.unique
class IssueStatus(str, enum.Enum):
    CREATED = "created"
    REUSED = "reused"
    ALREADY_REDEEMED = "already_redeemed"


@enum.unique
class VoucherPurpose(str, enum.Enum):
    MANUAL = "manual"
    EMAIL_FRIEND = "email_friend"
    ADMIN_INVITE = "admin_invite"
    ACHIEVEMENT = "achievement"
    REFERRAL_SIGNUP_REWARD = "referral_signup_reward"
    INVITE_REWARD = "invite_reward"
