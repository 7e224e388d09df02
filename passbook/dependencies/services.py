from typing import Annotated

from fastapi import Depends

from passbook.access import AccessResolver
from passbook.consumption import ConsumptionEngine
from passbook.dependencies.core import AppSettings, PolicyCache
from passbook.dependencies.db import DBSession
from passbook.grants import GrantService
from passbook.referrals import ReferralOrchestrator
from passbook.vouchers import VoucherManager


def get_access_resolver(session: DBSession, policies: PolicyCache) -> AccessResolver:
    return AccessResolver(session, policies)


def get_consumption_engine(session: DBSession, policies: PolicyCache) -> ConsumptionEngine:
    return ConsumptionEngine(session, policies)


def get_voucher_manager(session: DBSession, settings: AppSettings) -> VoucherManager:
    return VoucherManager(session, settings)


def get_grant_service(session: DBSession, settings: AppSettings) -> GrantService:
    return GrantService(session, settings)


def get_referral_orchestrator(session: DBSession, settings: AppSettings) -> ReferralOrchestrator:
    return ReferralOrchestrator(session, settings)


Resolver = Annotated[AccessResolver, Depends(get_access_resolver)]
Consumption = Annotated[ConsumptionEngine, Depends(get_consumption_engine)]
Vouchers = Annotated[VoucherManager, Depends(get_voucher_manager)]
Grants = Annotated[GrantService, Depends(get_grant_service)]
Referrals = Annotated[ReferralOrchestrator, Depends(get_referral_orchestrator)]
