"""Knowledge capture, retrieval and answering."""

from app.knowledge.models import ApiUsageEntry, KnowledgeItem, KnowledgeType, QueryLogEntry
from app.knowledge.store import KnowledgeStore
from app.knowledge.retrieval import RetrievalCascade, ScoredItem, SearchMode
from app.knowledge.augmentation import Augmentation, AugmentationPipeline
from app.knowledge.answers import AnswerComposer, ComposedAnswer
from app.knowledge.usage import UsageRecorder

__all__ = [
    # Models
    "ApiUsageEntry",
    "KnowledgeItem",
    "KnowledgeType",
    "QueryLogEntry",
    # Store
    "KnowledgeStore",
    # Retrieval
    "RetrievalCascade",
    "ScoredItem",
    "SearchMode",
    # Augmentation
    "Augmentation",
    "AugmentationPipeline",
    # Answering
    "AnswerComposer",
    "ComposedAnswer",
    # Audit
    "UsageRecorder",
]
