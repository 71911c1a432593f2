"""Score tree produced by one aggregation run."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from gapmatch.models.enums import ComplianceCategory, EvidenceTier, NodeKind


class ScoreNode(BaseModel):
    """A node of the Template -> Section -> Question score tree.

    ``raw_score`` is the node's unweighted 0-1 score, ``effective_score`` its
    weight-adjusted contribution to the parent and ``score`` the normalised
    0-1 score used for gap detection.
    """

    model_config = ConfigDict(frozen=True)

    node_id: str
    path: str
    kind: NodeKind
    title: str = ""
    weight: float
    raw_score: float
    effective_score: float
    score: float
    answered: bool = True
    required: bool = False
    foundational: bool = False
    category: ComplianceCategory | None = None
    keywords: tuple[str, ...] = ()
    evidence_tier: EvidenceTier | None = None
    children: tuple[ScoreNode, ...] = ()

    def walk(self):
        """Yield this node and every descendant, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()
