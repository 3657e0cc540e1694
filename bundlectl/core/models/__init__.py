"""
Domain models: Pydantic types for bundlectl.

All models are re-exported here for convenient access:

    from bundlectl.core.models import Bundle, Claim, CredentialSet, Operation, Receipt
"""

from bundlectl.core.models.bundle import (
    ActionDefinition,
    Bundle,
    CredentialRequirement,
    InvocationImage,
    ParameterDefinition,
)
from bundlectl.core.models.claim import Claim, Result, new_claim
from bundlectl.core.models.credentials import CredentialSet, CredentialStrategy, ValueSource
from bundlectl.core.models.operation import BindMount, Operation, Receipt
from bundlectl.core.models.reference import Reference, parse_reference
from bundlectl.core.models.settings import RegistryAuth, Settings, TargetContext

__all__ = [
    # bundle.py
    "ActionDefinition",
    "Bundle",
    "CredentialRequirement",
    "InvocationImage",
    "ParameterDefinition",
    # claim.py
    "Claim",
    "Result",
    "new_claim",
    # credentials.py
    "CredentialSet",
    "CredentialStrategy",
    "ValueSource",
    # operation.py
    "BindMount",
    "Operation",
    "Receipt",
    # reference.py
    "Reference",
    "parse_reference",
    # settings.py
    "RegistryAuth",
    "Settings",
    "TargetContext",
]
