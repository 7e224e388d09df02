from typing import Annotated

from fastapi import Depends, Request

from passbook.conf import Settings, get_settings
from passbook.policies import ContentPolicyCache

AppSettings = Annotated[Settings, Depends(get_settings)]


def get_policy_cache(request: Request) -> ContentPolicyCache:
    return request.app.state.policy_cache


PolicyCache = Annotated[ContentPolicyCache, Depends(get_policy_cache)]
