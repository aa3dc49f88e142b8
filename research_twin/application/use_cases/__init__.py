from .answer import AnswerResult, AnswerService
from .corpus import CorpusService
from .retrieval import RetrievalRequest, Retriever

__all__ = [
    "AnswerResult",
    "AnswerService",
    "CorpusService",
    "RetrievalRequest",
    "Retriever",
]
