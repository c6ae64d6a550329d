"""General tutoring chat and study recommendations (no document retrieval)."""

import random
import logging

from unilearn.services.ai_client import ChatClient

logger = logging.getLogger(__name__)

TUTOR_SYSTEM = (
    "You are an AI learning assistant for a university platform. You help students with "
    "their coursework, explain concepts clearly, provide study tips, and generate practice "
    "questions. Be helpful, encouraging, and educational. Keep responses concise but "
    "informative. If asked about specific subjects like mathematics, computer science, "
    "psychology, etc., provide accurate and detailed explanations suitable for "
    "university-level students."
)

ADVISOR_SYSTEM = (
    "You are an AI study advisor. Generate 3 specific, actionable study recommendations "
    "based on the student's course progress."
)

OPENERS = [
    "I understand you're asking about: {message}. Let me help you with that concept.",
    "That's a great question! Here's what I can tell you about {lower}.",
    "Let me break down {message} for you in simpler terms.",
    "I'd be happy to help you understand {message} better. Here's an explanation:",
]

# (keywords, canned explanation); first match wins.
TOPIC_EXPLANATIONS = [
    (
        ("derivative", "calculus"),
        "Derivatives measure the rate of change of a function. Think of it as how fast "
        "something is changing at any given moment. For example, if you're driving and your "
        "speedometer shows 60 mph, that's the derivative of your position with respect to "
        "time. The basic rules include: the derivative of x^n is n*x^(n-1), and the "
        "derivative of a constant is 0.",
    ),
    (
        ("psychology", "cognitive"),
        "In cognitive psychology, we study how people process information, including "
        "perception, memory, thinking, and problem-solving. The mind works like an "
        "information processing system, taking in data from the environment, processing "
        "it, and producing responses.",
    ),
    (
        ("computer science", "programming"),
        "Computer science combines mathematical rigor with creative problem-solving. "
        "Programming is about breaking down complex problems into smaller, manageable steps "
        "that a computer can execute. Start with understanding the problem, then design an "
        "algorithm, and finally implement it in code.",
    ),
]

GENERIC_EXPLANATION = (
    "I'm here to help you learn! Feel free to ask me specific questions about your "
    "coursework, and I'll provide detailed explanations and examples to help you "
    "understand the concepts better."
)

DEFAULT_RECOMMENDATIONS = [
    "Review your recent quiz performance and focus on weaker areas",
    "Schedule a study session for your upcoming assignments",
    "Practice with AI-generated questions for better understanding",
]


class TutorService:
    def __init__(self, chat_client: ChatClient | None = None, rng: random.Random | None = None):
        self.chat_client = chat_client
        self.rng = rng or random.Random()

    async def reply(self, message: str) -> str:
        """Answer a general study question."""
        if self.chat_client is None:
            return self.fallback_reply(message)

        try:
            reply = await self.chat_client.chat(
                system=TUTOR_SYSTEM,
                messages=[{"role": "user", "content": message}],
                max_tokens=500,
                temperature=0.7,
            )
            return reply or "I'm sorry, I couldn't generate a response at the moment. Please try again."
        except Exception as e:
            logger.warning("Tutor chat failed, using fallback: %s", e)
            return self.fallback_reply(message)

    def fallback_reply(self, message: str) -> str:
        opener = self.rng.choice(OPENERS).format(message=message, lower=message.lower())
        lowered = message.lower()
        for keywords, explanation in TOPIC_EXPLANATIONS:
            if any(k in lowered for k in keywords):
                return f"{opener} {explanation}"
        return f"{opener} {GENERIC_EXPLANATION}"

    async def study_recommendations(self, courses: list[dict]) -> list[str]:
        """Up to 3 recommendations from [{"title": ..., "progress": ...}, ...]."""
        if self.chat_client is None or not courses:
            return list(DEFAULT_RECOMMENDATIONS)

        course_info = ", ".join(f"{c['title']} ({c['progress']:g}% complete)" for c in courses)
        try:
            content = await self.chat_client.chat(
                system=ADVISOR_SYSTEM,
                messages=[{
                    "role": "user",
                    "content": f"Student is enrolled in: {course_info}. Generate study recommendations.",
                }],
                max_tokens=200,
                temperature=0.7,
            )
        except Exception as e:
            logger.warning("Recommendation generation failed, using defaults: %s", e)
            return list(DEFAULT_RECOMMENDATIONS)

        lines = [line.strip() for line in content.split("\n") if line.strip()]
        return lines[:3] or list(DEFAULT_RECOMMENDATIONS)
