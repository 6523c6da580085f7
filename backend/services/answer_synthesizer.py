"""Answer synthesis: grounded prompt construction and completion with safe fallbacks."""
import logging
from typing import List, Optional

from models.answer import Answer
from models.chunk import ScoredChunk
from services.retrieval_engine import RetrievalEngine
from config import CHAT_TOP_K

logger = logging.getLogger(__name__)

CONTEXT_DELIMITER = "\n---\n"
NO_MATERIALS_MARKER = "No specific course materials found containing the answer."
APOLOGY_MESSAGE = (
    "I'm having trouble generating an answer right now. Please try again in a moment."
)


class AnswerSynthesizer:
    """Answers student questions from a course's indexed materials.

    This is the boundary of the interactive path: retrieval and completion
    failures are logged and turned into a degraded answer, never raised.
    """

    def __init__(self, retrieval_engine: RetrievalEngine, completion_provider, default_top_k: int = CHAT_TOP_K):
        """
        Initialize the synthesizer.

        Args:
            retrieval_engine: RetrievalEngine used to ground answers
            completion_provider: CompletionProvider (e.g. LLMClient)
            default_top_k: Number of chunks used when the caller does not pass top_k
        """
        self.retrieval_engine = retrieval_engine
        self.completion_provider = completion_provider
        self.default_top_k = default_top_k

    def answer(self, question: str, course_id: str, top_k: Optional[int] = None) -> Answer:
        """
        Answer a question against a course's materials.

        Args:
            question: Verbatim student question
            course_id: Course whose materials ground the answer
            top_k: Number of chunks to retrieve (defaults to default_top_k)

        Returns:
            Answer with text and the ids of the documents that grounded it
        """
        top_k = top_k or self.default_top_k
        degraded = False

        try:
            retrieved = self.retrieval_engine.retrieve(question, course_id, top_k=top_k)
        except Exception as e:
            # Distinct from "no materials": the course may well have chunks.
            logger.warning(f"Retrieval failed for course {course_id}, answering without context: {e}")
            retrieved = []
            degraded = True

        if not retrieved and not degraded:
            logger.info(f"No course materials found for course {course_id}")

        prompt = self.build_prompt(question, [sc.chunk.text for sc in retrieved])

        try:
            text = self.completion_provider.complete(prompt)
        except Exception as e:
            logger.error(f"Completion failed for course {course_id}: {e}")
            text = None
        else:
            if not text:
                logger.warning(f"Completion returned no candidate for course {course_id}")

        if not text:
            return Answer(
                text=APOLOGY_MESSAGE,
                source_refs=[],
                chunks_used=0,
                grounded=False,
                degraded=True,
            )

        return Answer(
            text=text,
            source_refs=self._source_refs(retrieved),
            chunks_used=len(retrieved),
            grounded=bool(retrieved),
            degraded=degraded,
        )

    @staticmethod
    def build_prompt(question: str, context_chunks: Optional[List[str]] = None) -> str:
        """
        Build the tutor prompt with the context block and the verbatim question.

        Args:
            question: Student question
            context_chunks: Retrieved chunk texts, best first

        Returns:
            Complete prompt string
        """
        context = CONTEXT_DELIMITER.join(context_chunks) if context_chunks else NO_MATERIALS_MARKER

        return f"""You are an AI tutor acting as a study notebook for a specific course.
Answer the student's question based strictly on the provided context.

CONTEXT FROM COURSE MATERIALS:
{context}

STUDENT QUESTION: "{question}"

INSTRUCTIONS:
- If the answer is in the context, be precise and explain the reasoning using the context.
- If the context does not contain the answer, say "I couldn't find this in the course materials." and then give a general answer, clearly labelled as general knowledge rather than course material.
- Do not cite or invent course materials that are not in the context.
- Keep the tone encouraging and academic.

Answer:"""

    @staticmethod
    def _source_refs(retrieved: List[ScoredChunk]) -> List[str]:
        """Distinct originating document ids, in rank order."""
        refs: List[str] = []
        for scored in retrieved:
            if scored.chunk.document_id not in refs:
                refs.append(scored.chunk.document_id)
        return refs
