"""
AI provider for study features: mindmaps, practice tests, the study guide,
note suggestions and concept tags.

Talks to one OpenAI-compatible chat-completion endpoint (Groq by default).
All prompts are module-level constants so they can be tuned without
touching logic code.

Public API
----------
AIProvider.chat(messages)                                          -> str
AIProvider.generate_mindmap(chapter_title, content)                -> Dict
AIProvider.generate_test_questions(title, content, difficulty, ...)-> List[Dict]
AIProvider.get_study_guide(chapter_title, content, query)          -> str
AIProvider.get_suggestions(content, chapter_title)                 -> Dict
AIProvider.extract_tags(title, logic, code)                        -> List[str]

Failure policy
--------------
Malformed model output, or a provider error during mindmap / test /
suggestion generation, is recoverable: a deterministic fallback is returned.
A missing API key during tag extraction, or two failed tag-extraction
attempts, is surfaced as ``AIProviderError`` / ``TagExtractionError``.
"""
from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, Dict, List, Optional

import httpx
from fastapi import Request
from pydantic import ValidationError

from studyhub.config import Settings, settings as default_settings
from studyhub.models.schemas import GeneratedQuestion, MindmapGraph, SuggestionsResponse
from studyhub.utils.helpers import unique_preserving_order

logger = logging.getLogger(__name__)


class AIProviderError(Exception):
    """The chat-completion call could not produce a usable answer."""


class TagExtractionError(AIProviderError):
    """Tag extraction failed on every attempt."""


# ---------------------------------------------------------------------------
# Prompt templates
# ---------------------------------------------------------------------------

_MINDMAP_PROMPT = """\
You are a study assistant. Analyze the following study notes and create a detailed mindmap structure.

Chapter: {chapter_title}

Content:
{content}

Create a mindmap with:
1. A root node for the main topic
2. Branch nodes for major concepts (3-6 branches)
3. Leaf nodes for details under each branch

Return ONLY a valid JSON object (no markdown, no code blocks) with this exact structure:
{{
  "nodes": [
    {{"id": "root", "label": "Main Topic Name", "type": "root", "x": 400, "y": 300}},
    {{"id": "branch-1", "label": "Concept 1", "type": "branch", "x": 200, "y": 150}},
    {{"id": "leaf-1-1", "label": "Detail 1", "type": "leaf", "x": 100, "y": 100}}
  ],
  "edges": [
    {{"source": "root", "target": "branch-1"}},
    {{"source": "branch-1", "target": "leaf-1-1"}}
  ]
}}

Position nodes in a radial layout around the root (x: 400, y: 300).\
"""

_TEST_PROMPT = """\
You are a study assistant creating practice questions with links to similar problems on coding platforms.

Based on this study material:
Chapter: {chapter_title}

Study Notes:
{content}{tag_context}

Generate {count} {difficulty} difficulty practice questions to test understanding of this material.

IMPORTANT: For each question, find and include a REAL link to a similar problem on LeetCode, \
HackerRank, GeeksforGeeks, or Codeforces that matches the concepts.

Return ONLY a valid JSON array (no markdown, no code blocks) with this exact structure:
[
  {{
    "question": "Clear, specific question about the material",
    "source": "LeetCode" or "HackerRank" or "GeeksforGeeks" or "Codeforces",
    "sourceUrl": "https://leetcode.com/problems/problem-name/",
    "solution": "Detailed step-by-step solution or explanation",
    "solutionCode": "// Code if applicable, otherwise empty string",
    "difficulty": "{difficulty}",
    "tags": ["tag1", "tag2"]
  }}
]

Guidelines for finding similar problems:
- Match the core concept being tested (e.g., arrays -> Two Sum, DP -> Climbing Stairs)
- Use REAL problem URLs from these platforms:
  * LeetCode: https://leetcode.com/problems/[problem-slug]/
  * HackerRank: https://www.hackerrank.com/challenges/[problem-name]/
  * GeeksforGeeks: https://www.geeksforgeeks.org/problems/[problem-name]/
  * Codeforces: https://codeforces.com/problemset/problem/[id]/[letter]
- Include 2-4 relevant tags per question (e.g., "arrays", "two-pointers", "dynamic-programming")

Make the questions varied:
- Some conceptual understanding questions
- Some application/problem-solving questions
- If the material includes code, include coding questions\
"""

_TAG_CONTEXT = (
    "\n\nKnown concept tags from the study material: {tags}\n"
    "Prioritize finding problems that match these concepts!"
)

_GUIDE_PROMPT = """\
You are an expert study tutor helping a student.

The student is studying: {chapter_title}

Their study notes include:
{content}

The student asks: "{query}"

Provide a helpful, detailed response that:
1. Directly answers their question
2. Relates it to their study material if relevant
3. Gives examples or analogies to aid understanding
4. Suggests related topics they should also understand

Be conversational but educational. Use markdown formatting for clarity.\
"""

_SUGGESTIONS_PROMPT = """\
You are a study assistant analyzing study notes.

Chapter: {chapter_title}
Content:
{content}

Provide 3-5 helpful suggestions to improve these study notes. Consider:
- Missing important concepts
- Areas that need more detail
- Related topics to explore
- Study tips for this material

Return ONLY a valid JSON object (no markdown) with this structure:
{{
  "suggestions": [
    {{"type": "enhancement", "icon": "💡", "text": "Suggestion text here"}},
    {{"type": "topic", "icon": "📚", "text": "Related topic suggestion"}},
    {{"type": "tip", "icon": "✨", "text": "Study tip"}}
  ]
}}\
"""

_TAG_PROMPT = """\
Analyze this code and return accurate LeetCode-style tags.

IMPORTANT: Ignore the title "{title}" - it may be wrong. Only analyze the actual code.

Code:
{code}

Description (may be inaccurate):
{logic}

Instructions:
1. Read the code carefully
2. Identify data structures used (array, string, hash-table, stack, queue, tree, graph, linked-list, heap)
3. Identify algorithm patterns (greedy, dp, two-pointers, binary-search, bfs, dfs, backtracking, sliding-window, sorting)
4. Be specific - only tag what you actually see in the code
5. A frequency array like freq[26] or count[] is effectively a hash-table for counting

Return ONLY a JSON array of 3-5 lowercase tags. Example: ["string", "hash-table", "greedy"]\
"""

GUIDE_UNAVAILABLE_MESSAGE = """\
I couldn't generate a response right now. Please check your API key configuration.

**Troubleshooting:**
1. Make sure GROQ_API_KEY is set in your .env file
2. Get a free API key from: https://console.groq.com/
3. Restart the backend server after updating the key\
"""

FALLBACK_SUGGESTIONS: Dict[str, Any] = {
    "suggestions": [
        {"type": "enhancement", "icon": "💡", "text": "Consider adding more examples to illustrate key concepts"},
        {"type": "topic", "icon": "📚", "text": "Explore related topics to deepen understanding"},
        {"type": "tip", "icon": "✨", "text": "Review this material regularly for better retention"},
    ]
}

# Canned problems for the offline question generator, matched by keyword
_FALLBACK_PROBLEMS: Dict[str, Dict[str, Any]] = {
    "default": {"url": "https://leetcode.com/problems/two-sum/", "tags": ["arrays", "hash-table"]},
    "array": {"url": "https://leetcode.com/problems/best-time-to-buy-and-sell-stock/", "tags": ["arrays", "dynamic-programming"]},
    "string": {"url": "https://leetcode.com/problems/valid-anagram/", "tags": ["strings", "hash-table"]},
    "dp": {"url": "https://leetcode.com/problems/climbing-stairs/", "tags": ["dynamic-programming", "recursion"]},
    "tree": {"url": "https://leetcode.com/problems/maximum-depth-of-binary-tree/", "tags": ["trees", "dfs", "recursion"]},
    "graph": {"url": "https://leetcode.com/problems/number-of-islands/", "tags": ["graphs", "bfs", "dfs"]},
    "linked": {"url": "https://leetcode.com/problems/reverse-linked-list/", "tags": ["linked-list", "recursion"]},
}

# Checked in order; the first keyword found in the topic wins
_FALLBACK_KEYWORDS = (
    (("array",), "array"),
    (("string",), "string"),
    (("dynamic", "dp"), "dp"),
    (("tree",), "tree"),
    (("graph",), "graph"),
    (("linked", "list"), "linked"),
)


# ---------------------------------------------------------------------------
# Tolerant JSON parsing
# ---------------------------------------------------------------------------

def strip_code_fences(text: str) -> str:
    """Remove ```json / ``` markers that models often wrap output in."""
    text = re.sub(r"```[a-zA-Z]*\n?", "", text)
    return text.strip()


def extract_json_structure(text: str, open_b: str, close_b: str) -> str:
    """
    Find the first complete balanced open_b … close_b structure in *text*.
    Returns the matched fragment, or empty string if not found.
    """
    start = text.find(open_b)
    if start == -1:
        return ""

    depth = 0
    in_string = False
    escape_next = False

    for i, ch in enumerate(text[start:], start=start):
        if escape_next:
            escape_next = False
            continue
        if ch == "\\" and in_string:
            escape_next = True
            continue
        if ch == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if ch == open_b:
            depth += 1
        elif ch == close_b:
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return ""


def _try_json(text: str) -> Any:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None


def parse_model_json(response: str, expect: str = "object") -> Any:
    """
    Parse JSON out of a chat response, tolerating prose and code fences.

    ``expect`` is ``"object"`` or ``"array"`` and decides which bracket pair
    is searched for first. Returns ``None`` when nothing parses.
    """
    if not response:
        return None

    text = strip_code_fences(response)

    value = _try_json(text)
    if value is not None:
        return value

    pairs = [("{", "}"), ("[", "]")]
    if expect == "array":
        pairs.reverse()

    for open_b, close_b in pairs:
        fragment = extract_json_structure(text, open_b, close_b)
        if not fragment:
            continue
        value = _try_json(fragment)
        if value is not None:
            return value
        # Trailing commas before ] or }
        value = _try_json(re.sub(r",(\s*[}\]])", r"\1", fragment))
        if value is not None:
            return value

    logger.warning("parse_model_json: no JSON found. Preview: %s", response[:300])
    return None


# ---------------------------------------------------------------------------
# Provider
# ---------------------------------------------------------------------------

class AIProvider:
    """
    Chat-completion client with study-specific helpers.

    ``transport`` is passed straight to ``httpx.AsyncClient`` so tests can
    plug in an ``httpx.MockTransport``.
    """

    TAG_ATTEMPTS: int = 2
    MIN_TAGS: int = 2
    MINDMAP_WORDS: int = 8
    MINDMAP_BRANCHES: int = 3

    def __init__(
        self,
        config: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        config = config or default_settings
        self.api_key = config.GROQ_API_KEY
        self.api_url = config.GROQ_API_URL
        self.model = config.GROQ_MODEL
        self.temperature = config.AI_TEMPERATURE
        self.max_tokens = config.AI_MAX_TOKENS
        self.timeout = httpx.Timeout(float(config.AI_TIMEOUT), connect=10.0)
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    # ------------------------------------------------------------------
    # Core caller
    # ------------------------------------------------------------------

    async def chat(self, messages: List[Dict[str, str]]) -> str:
        """
        POST *messages* to the chat-completion endpoint and return the reply text.

        Raises AIProviderError when the key is missing, the request fails,
        or the payload carries an error.
        """
        if not self.api_key:
            raise AIProviderError("GROQ_API_KEY not configured")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(
                    self.api_url,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json={
                        "model": self.model,
                        "messages": messages,
                        "temperature": self.temperature,
                        "max_tokens": self.max_tokens,
                    },
                )
        except httpx.TimeoutException as exc:
            logger.error("chat: request timed out")
            raise AIProviderError("AI provider request timed out") from exc
        except httpx.HTTPError as exc:
            logger.error("chat: connection error - %s", exc)
            raise AIProviderError(f"AI provider unreachable: {exc}") from exc

        try:
            data = resp.json()
        except ValueError:
            data = {}

        if isinstance(data, dict) and data.get("error"):
            error = data["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            logger.error("chat: provider error - %s", message)
            raise AIProviderError(message or "AI provider error")

        if resp.status_code >= 400:
            logger.error("chat: provider returned HTTP %d: %s", resp.status_code, resp.text[:300])
            raise AIProviderError(f"AI provider returned HTTP {resp.status_code}")

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise AIProviderError("Malformed AI provider response") from exc

        logger.info("chat: response received (%d chars)", len(content or ""))
        return content or ""

    async def _ask(self, prompt: str) -> str:
        return await self.chat([{"role": "user", "content": prompt}])

    # ------------------------------------------------------------------
    # Mindmaps
    # ------------------------------------------------------------------

    async def generate_mindmap(self, chapter_title: str, content: str) -> Dict[str, Any]:
        """Return ``{nodes, edges}``; falls back to keyword topics on any failure."""
        prompt = _MINDMAP_PROMPT.format(chapter_title=chapter_title, content=content)
        try:
            text = await self._ask(prompt)
            parsed = parse_model_json(text, expect="object")
            if parsed is None:
                raise AIProviderError("Mindmap response was not JSON")
            graph = MindmapGraph.model_validate(parsed)
            return graph.model_dump()
        except (AIProviderError, ValidationError) as exc:
            logger.warning("generate_mindmap: using fallback (%s)", exc)
            return self.extract_topics_manually(chapter_title, content)

    def extract_topics_manually(self, chapter_title: str, content: str) -> Dict[str, Any]:
        """Deterministic radial mindmap built from the longest-looking words."""
        words = [
            w for w in (content or "").split()
            if len(w) > 4 and w[0].isascii() and w[0].isalpha()
        ]
        topics = unique_preserving_order(words)[: self.MINDMAP_WORDS]

        nodes: List[Dict[str, Any]] = [
            {"id": "root", "label": chapter_title or "Main Topic", "type": "root", "x": 400, "y": 300}
        ]
        for i, word in enumerate(topics):
            angle = (i / len(topics)) * 2 * math.pi
            is_branch = i < self.MINDMAP_BRANCHES
            radius = 180 if is_branch else 280
            nodes.append({
                "id": f"node-{i}",
                "label": word[0].upper() + word[1:],
                "type": "branch" if is_branch else "leaf",
                "x": 400 + math.cos(angle) * radius,
                "y": 300 + math.sin(angle) * radius,
            })

        edges = [
            {"source": "node-0" if node["type"] == "leaf" else "root", "target": node["id"]}
            for node in nodes[1:]
        ]
        return {"nodes": nodes, "edges": edges}

    # ------------------------------------------------------------------
    # Practice tests
    # ------------------------------------------------------------------

    async def generate_test_questions(
        self,
        chapter_title: str,
        content: str,
        difficulty: str = "medium",
        count: int = 5,
        existing_tags: Optional[List[str]] = None,
    ) -> List[Dict[str, Any]]:
        """Return normalised question dicts; falls back to canned problems on failure."""
        tag_context = _TAG_CONTEXT.format(tags=", ".join(existing_tags)) if existing_tags else ""
        prompt = _TEST_PROMPT.format(
            chapter_title=chapter_title,
            content=content,
            tag_context=tag_context,
            count=count,
            difficulty=difficulty,
        )
        try:
            text = await self._ask(prompt)
            parsed = parse_model_json(text, expect="array")
            if not isinstance(parsed, list) or not parsed:
                raise AIProviderError("Test response was not a JSON array")
            return [
                GeneratedQuestion.model_validate(item).model_dump(mode="json")
                for item in parsed
            ]
        except (AIProviderError, ValidationError) as exc:
            logger.warning("generate_test_questions: using fallback (%s)", exc)
            return self.generate_fallback_questions(chapter_title, content, difficulty, count)

    def generate_fallback_questions(
        self,
        chapter_title: str,
        content: str,
        difficulty: str,
        count: int,
    ) -> List[Dict[str, Any]]:
        topics = [line for line in (content or "").split("\n") if len(line.strip()) > 10][:count]

        questions = []
        for i in range(count):
            topic = topics[i] if i < len(topics) else chapter_title
            problem = _FALLBACK_PROBLEMS[self._match_problem(topic)]
            questions.append({
                "question": f"Explain the concept: {topic[:100]}...",
                "source": "LeetCode",
                "source_url": problem["url"],
                "solution": "Review your notes on this topic and explain it in your own words.",
                "solution_code": "",
                "difficulty": difficulty,
                "tags": list(problem["tags"]),
            })
        return questions

    @staticmethod
    def _match_problem(topic: str) -> str:
        lowered = topic.lower()
        for keywords, key in _FALLBACK_KEYWORDS:
            if any(k in lowered for k in keywords):
                return key
        return "default"

    # ------------------------------------------------------------------
    # Study guide / suggestions
    # ------------------------------------------------------------------

    async def get_study_guide(self, chapter_title: str, content: str, query: str) -> str:
        prompt = _GUIDE_PROMPT.format(chapter_title=chapter_title, content=content, query=query)
        try:
            return await self._ask(prompt)
        except AIProviderError as exc:
            logger.error("get_study_guide: %s", exc)
            return GUIDE_UNAVAILABLE_MESSAGE

    async def get_suggestions(self, content: str, chapter_title: str) -> Dict[str, Any]:
        prompt = _SUGGESTIONS_PROMPT.format(chapter_title=chapter_title, content=content)
        try:
            text = await self._ask(prompt)
            parsed = parse_model_json(text, expect="object")
            if parsed is None:
                raise AIProviderError("Suggestions response was not JSON")
            return SuggestionsResponse.model_validate(parsed).model_dump()
        except (AIProviderError, ValidationError) as exc:
            logger.warning("get_suggestions: using fallback (%s)", exc)
            return {"suggestions": [dict(s) for s in FALLBACK_SUGGESTIONS["suggestions"]]}

    # ------------------------------------------------------------------
    # Concept tags
    # ------------------------------------------------------------------

    async def extract_tags(self, question_title: str, logic_content: str, code_content: str) -> List[str]:
        """
        Ask the model for LeetCode-style tags, analysing the code first.

        Makes up to TAG_ATTEMPTS attempts; an attempt succeeds when it yields
        at least MIN_TAGS non-empty strings.
        """
        if not self.api_key:
            raise AIProviderError("GROQ_API_KEY not configured")

        prompt = _TAG_PROMPT.format(
            title=question_title,
            code=code_content or "No code",
            logic=logic_content or "No description",
        )

        for attempt in range(1, self.TAG_ATTEMPTS + 1):
            try:
                text = await self._ask(prompt)
            except AIProviderError as exc:
                logger.error("extract_tags: attempt %d failed - %s", attempt, exc)
                continue

            parsed = parse_model_json(text, expect="array")
            if isinstance(parsed, list):
                tags = [t.strip().lower() for t in parsed if isinstance(t, str) and t.strip()]
                if len(tags) >= self.MIN_TAGS:
                    logger.info("extract_tags: attempt %d -> %s", attempt, ", ".join(tags))
                    return tags

            logger.warning("extract_tags: insufficient tags on attempt %d", attempt)

        raise TagExtractionError(
            f"AI tag extraction failed after {self.TAG_ATTEMPTS} attempts. "
            "Please check your API key or try again."
        )


def get_ai_provider(request: Request) -> AIProvider:
    """FastAPI dependency returning the provider built from the app's settings."""
    provider = getattr(request.app.state, "ai_provider", None)
    if provider is None:
        provider = AIProvider(request.app.state.settings)
        request.app.state.ai_provider = provider
    return provider
