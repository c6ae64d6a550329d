"""Grounded answers and study questions over a course's documents."""

import re
import logging
from collections import Counter

from unilearn.config import settings
from unilearn.services.ai_client import ChatClient
from unilearn.services.rag import Retriever, SearchResult

logger = logging.getLogger(__name__)

NO_DOCUMENTS_MESSAGE = (
    "I couldn't find any relevant documents for your question. Please make sure course "
    "materials have been uploaded, or try asking a different question."
)
FALLBACK_NO_DOCUMENTS_MESSAGE = (
    "I couldn't find any relevant documents for your question. Please make sure course "
    "materials have been uploaded."
)

RAG_SYSTEM = (
    "You are an AI teaching assistant. Answer the student's question using ONLY the "
    "provided course documents. Be helpful, accurate, and cite which document you're "
    "referencing. If the documents don't contain enough information to answer the "
    "question, say so clearly.\n\n"
    "Context from course documents:\n{context}"
)

STUDY_QUESTIONS_QUERY = "important concepts definitions key points"
STUDY_QUESTIONS_SYSTEM = (
    "Generate 5 study questions based on the course content provided. "
    "Make them thought-provoking and educational."
)

STARTER_QUESTIONS = [
    "What are the main topics covered in this course?",
    "Can you explain the key concepts we've studied?",
    "What should I review for the upcoming assessment?",
]

GENERIC_QUESTIONS = [
    "What are the key concepts discussed in the course materials?",
    "How would you explain the main ideas in your own words?",
    "What examples are provided to illustrate these concepts?",
    "What connections can you make between different topics?",
    "How might these concepts apply in real-world situations?",
]

# Common words that never make a useful study-question topic.
STOPWORDS = frozenset("""
    about above after again against also among another because been before being
    below between both could does doing down during each either every first from
    further have having here however into itself just many more most much must
    other over same several should since some such than that their them then there
    these they this those through under until upon very were what when where which
    while will with within without would your
""".split())

_NON_WORD = re.compile(r"\W+", re.ASCII)
_SENTENCE_END = re.compile(r"[.!?]+")


def _tokens(text: str) -> list[str]:
    return [t for t in _NON_WORD.split(text.lower()) if t]


def format_sources(results: list[SearchResult]) -> str:
    lines = "\n".join(f"{i}. {r.file_name}" for i, r in enumerate(results, start=1))
    return f"📚 Sources:\n{lines}"


def best_matching_sentence(query: str, content: str) -> str:
    """The sentence of `content` sharing the most words with `query`.

    Ties, including the all-zero case, keep the earliest sentence.
    """
    query_words = _tokens(query)
    sentences = _SENTENCE_END.split(content)

    best_sentence = sentences[0]
    best_score = 0
    for sentence in sentences:
        sentence_words = set(_tokens(sentence))
        score = sum(1 for word in query_words if word in sentence_words)
        if score > best_score:
            best_score = score
            best_sentence = sentence
    return best_sentence.strip()


def key_terms(texts: list[str], limit: int) -> list[str]:
    """Most frequent content words across texts; ties keep first appearance."""
    counts: Counter = Counter()
    for text in texts:
        counts.update(
            t for t in _tokens(text)
            if len(t) > 3 and t not in STOPWORDS and not t.isdigit()
        )
    # Counter preserves insertion order, and most_common() is stable for ties.
    return [term for term, _ in counts.most_common(limit)]


class RagService:
    """Answer composer: retrieval → grounded prompt → completion, with a local fallback."""

    def __init__(self, retriever: Retriever, chat_client: ChatClient | None = None):
        self.retriever = retriever
        self.chat_client = chat_client

    async def answer(self, query: str, course_id: str, user_id: str) -> str:
        try:
            results = await self.retriever.search(query, course_id, settings.RAG_ANSWER_TOP_K)
            if not results:
                return NO_DOCUMENTS_MESSAGE

            if self.chat_client is None:
                return self.fallback_answer(query, results)

            context = "".join(
                f"Document {i} ({r.file_name}):\n{r.content}\n\n"
                for i, r in enumerate(results, start=1)
            )
            answer = await self.chat_client.chat(
                system=RAG_SYSTEM.format(context=context),
                messages=[{"role": "user", "content": query}],
                max_tokens=500,
                temperature=0.3,
            )
            answer = answer or "I couldn't generate a response at the moment. Please try again."
            return f"{answer}\n\n{format_sources(results)}"
        except Exception as e:
            logger.warning("RAG answer failed for user %s in course %s, using fallback: %s", user_id, course_id, e)
            results = await self.retriever.search(query, course_id, settings.RAG_ANSWER_TOP_K)
            return self.fallback_answer(query, results)

    @staticmethod
    def fallback_answer(query: str, results: list[SearchResult]) -> str:
        """Extractive answer: the best sentence of the top chunk plus its sources."""
        if not results:
            return FALLBACK_NO_DOCUMENTS_MESSAGE

        excerpt = best_matching_sentence(query, results[0].content)
        return (
            "Based on the course materials, here's what I found:\n\n"
            f"{excerpt}\n\n"
            "For more detailed information, please refer to the complete documents.\n\n"
            f"{format_sources(results[:2])}"
        )

    async def study_questions(self, course_id: str) -> list[str]:
        count = settings.STUDY_QUESTION_COUNT
        results = await self.retriever.search(STUDY_QUESTIONS_QUERY, course_id, count)
        if not results:
            return list(STARTER_QUESTIONS)

        if self.chat_client is None:
            return self.fallback_questions(results, count)

        try:
            context = "\n\n".join(r.content for r in results)
            content = await self.chat_client.chat(
                system=STUDY_QUESTIONS_SYSTEM,
                messages=[{"role": "user", "content": f"Course content:\n{context}"}],
                max_tokens=300,
                temperature=0.7,
            )
            questions = [line.strip() for line in content.split("\n") if line.strip()]
            return questions[:count] or self.fallback_questions(results, count)
        except Exception as e:
            logger.warning("Study question generation failed for course %s, using fallback: %s", course_id, e)
            return self.fallback_questions(results, count)

    @staticmethod
    def fallback_questions(results: list[SearchResult], count: int = 5) -> list[str]:
        """Questions built around the dominant terms of the retrieved chunks."""
        terms = key_terms([r.content for r in results], limit=3)

        questions = []
        if terms:
            questions.append(f"What is meant by \"{terms[0]}\" in the course materials?")
        if len(terms) >= 2:
            questions.append(f"How does {terms[0]} relate to {terms[1]}?")
        if len(terms) >= 3:
            questions.append(f"Can you give a real-world example of {terms[2]}?")

        for generic in GENERIC_QUESTIONS:
            if len(questions) >= count:
                break
            questions.append(generic)
        return questions[:count]
