"""
Claim Assembler Module

Builds the assertion set for an asset kind and wraps it, together with the
ingredients, into a claim that can be signed.
"""

import uuid
from typing import Any, Dict, List, Optional

from ..attestation import get_cc_attestation_assertion
from ..errors import ValidationError
from ..models import (
    IPTC_SOURCE_TYPE_BASE,
    Action,
    ActionAssertion,
    AssetKind,
    Author,
    Claim,
    CreativeWorkAssertion,
    Ingredient,
)

GENERATOR_NAME = "ai-artifact-provenance"

CREATED_ACTION = "c2pa.created"
EVALUATION_ACTION = "c2pa.evaluation"

# kind -> (creative_type, digital source type suffix)
KIND_TYPES = {
    AssetKind.MODEL: ("Model", "algorithmicMedia"),
    AssetKind.DATASET: ("Dataset", "dataset"),
    AssetKind.SOFTWARE: ("Software", "software"),
    AssetKind.EVALUATION: ("EvaluationResult", "evaluationResult"),
}


def new_claim_id() -> str:
    return f"urn:c2pa:{uuid.uuid4()}"


def creative_type_for(kind: AssetKind) -> str:
    return KIND_TYPES[kind][0]


def digital_source_type_for(kind: AssetKind) -> str:
    return IPTC_SOURCE_TYPE_BASE + KIND_TYPES[kind][1]


def parse_metrics(metrics: Optional[List[str]]) -> Dict[str, str]:
    """
    Parse ``key=value`` metric strings.

    Raises:
        ValidationError: if any entry does not contain exactly one ``=``
    """
    parsed = {}
    for metric in metrics or []:
        parts = metric.split("=")
        if len(parts) != 2:
            raise ValidationError(
                f"Invalid metric format: {metric}. Expected format: key=value"
            )
        parsed[parts[0]] = parts[1]
    return parsed


class ClaimAssembler:
    """Assembles kind-specific assertions into a claim."""

    def __init__(self,
                 kind: AssetKind,
                 name: str,
                 description: Optional[str] = None,
                 author_org: Optional[str] = None,
                 author_name: Optional[str] = None):
        self.kind = kind
        self.name = name
        self.description = description
        self.author_org = author_org
        self.author_name = author_name

    def creative_work(self) -> CreativeWorkAssertion:
        return CreativeWorkAssertion(
            creative_type=creative_type_for(self.kind),
            author=[
                Author(author_type="Organization", name=self.author_org or "Organization"),
                Author(author_type="Person", name=self.author_name or "Unknown"),
            ],
        )

    def action_parameters(self,
                          software_type: Optional[str] = None,
                          version: Optional[str] = None,
                          evaluation: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Build the free-form parameter map of the creation action.

        Args:
            software_type: Software kind only
            version: Software kind only
            evaluation: Evaluation kind only; ``model_id``, ``dataset_id`` and
                ``metrics`` are copied into the parameters

        Returns:
            Parameter dictionary
        """
        params: Dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "author": {
                "organization": self.author_org,
                "name": self.author_name,
            },
        }

        if self.kind == AssetKind.EVALUATION:
            evaluation = evaluation or {}
            for key in ("model_id", "dataset_id", "metrics"):
                params[key] = evaluation.get(key)
        elif self.kind == AssetKind.SOFTWARE:
            if software_type is not None:
                params["software_type"] = software_type
            if version is not None:
                params["version"] = version

        return params

    def action(self, **parameters) -> ActionAssertion:
        label = EVALUATION_ACTION if self.kind == AssetKind.EVALUATION else CREATED_ACTION
        return ActionAssertion(actions=[
            Action(
                action=label,
                software_agent=GENERATOR_NAME,
                parameters=self.action_parameters(**parameters),
                digital_source_type=digital_source_type_for(self.kind),
            )
        ])

    def assemble(self,
                 ingredients: List[Ingredient],
                 with_cc: bool = False,
                 **parameters) -> Claim:
        """
        Assemble an unsigned claim.

        Args:
            ingredients: Ingredients built for the manifest
            with_cc: Append a confidential-computing attestation assertion.
                Failure to obtain it aborts the claim.
            **parameters: Passed to ``action_parameters``

        Returns:
            Claim with creative-work, action and optional attestation assertions
        """
        assertions = [self.creative_work(), self.action(**parameters)]
        if with_cc:
            assertions.append(get_cc_attestation_assertion())

        return Claim(
            instance_id=new_claim_id(),
            ingredients=list(ingredients),
            created_assertions=assertions,
            claim_generator_info=GENERATOR_NAME,
        )
