"""Local, deterministic answers used when the hosted LLM is unavailable.

Classification is a fixed, ordered table of substring checks against the
lowercased question: the first matching rule wins. The table is plain data
so that it stays easy to audit; there is no randomness and no state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

FallbackNote = Literal["using local fallback", "safety-first"]

LOCAL_FALLBACK_NOTE: FallbackNote = "using local fallback"
SAFETY_FIRST_NOTE: FallbackNote = "safety-first"

# Questions shorter than this are treated as too vague to classify
MIN_QUESTION_CHARS = 10

VAGUE_PHRASES: tuple[str, ...] = ("what is", "who is", "help", "tell me")
DANGER_KEYWORDS: tuple[str, ...] = ("poison", "mix", "drink", "inject", "harmful", "toxic")

CLARIFYING_ANSWER = (
    "Hi, I can help with pest prevention, identification, and treatment advice. "
    "Tell me what pest you have (rats, termites, cockroaches, mosquitoes, bedbugs, "
    "ants, fleas, flies), where you see them, and any photos or symptoms. "
    "I will then give step-by-step, safe guidance."
)

SAFETY_ANSWER = (
    "I cannot provide instructions that could be dangerous or harmful. "
    "For chemical or medical interventions, consult a licensed professional "
    "and follow product labels and local regulations."
)

DEFAULT_ANSWER = (
    "I can help with pest ID, prevention, and safe treatment. Tell me: which pest "
    "(or describe what you see), where it is (kitchen, bedroom, yard), and any photos "
    "or details. I will then provide step-by-step advice and indicate when to call "
    "a professional."
)


@dataclass(frozen=True)
class LocalReply:
    """Canned answer plus a marker telling the UI it is not a live AI reply."""

    answer: str
    note: FallbackNote


@dataclass(frozen=True)
class FallbackTopic:
    """One pest category in the classification table."""

    name: str
    keywords: tuple[str, ...]
    lead_in: str
    steps: tuple[str, ...]
    closing: str = ""

    def matches(self, text: str) -> bool:
        return _contains_any(text, self.keywords)

    def render(self) -> str:
        parts = [self.lead_in + " ".join(self.steps)]
        if self.closing:
            parts.append(self.closing)
        return " ".join(parts)


FALLBACK_TOPICS: tuple[FallbackTopic, ...] = (
    FallbackTopic(
        name="rodents",
        keywords=("rodent", "rat", "rats", "mice", "mouse"),
        lead_in="For rodents: ",
        steps=(
            "Inspect: look for droppings, gnaw marks, and entry points around walls, pipes, and skirting.",
            "Sanitation: remove food sources (store food in sealed containers), clean crumbs/spills, secure pet food.",
            "Exclude: seal holes and gaps larger than 6mm using steel wool, metal mesh, or expanding foam on exterior and interior entry points.",
            "Trapping: use snap traps or secure indoor live traps; place alongside walls where droppings are found. Avoid poison inside homes where pets/children are present.",
            "Professional help: call professionals if infestation is large, if you suspect baiting is required outdoors, if you have health concerns, or if exclusion is difficult.",
        ),
        closing=(
            "If you want, tell me where you mainly see them (kitchen, roof, store-room) "
            "and I can give a tailored plan."
        ),
    ),
    FallbackTopic(
        name="termites",
        keywords=("termite", "termites", "woodworm"),
        lead_in="Termite guidance: ",
        steps=(
            "Check for mud tubes on foundations and soft or hollow-sounding timber.",
            "Reduce wood-to-soil contact and remove damp timber where possible.",
            "Avoid DIY insecticide drenches for large infestations; contact a licensed pest control company for inspection and a treatment plan (chemical or baiting).",
            "Prevent: improve drainage, ventilate crawl spaces, store firewood away from the house.",
        ),
    ),
    FallbackTopic(
        name="cockroaches",
        keywords=("cockroach", "cockroaches", "roach"),
        lead_in="Cockroach steps: ",
        steps=(
            "Sanitation: remove crumbs, wash dishes promptly, keep bins sealed.",
            "Baiting: use gel baits in cracks and crevices, away from children/pets.",
            "Crack sealing: seal gaps behind appliances and around pipes.",
            "Call professionals if you see many cockroaches or if baits are ineffective.",
        ),
    ),
    FallbackTopic(
        name="mosquitoes",
        keywords=("mosquito", "mosquitoes", "aedes"),
        lead_in="Mosquito prevention: ",
        steps=(
            "Eliminate standing water (pots, drains, puddles) where mosquitoes breed.",
            "Use screens, bed nets, and repellents when necessary.",
            "Consider larvicidal treatment of persistent water sources if appropriate (professional advice recommended).",
        ),
    ),
    FallbackTopic(
        name="bed_bugs",
        keywords=("bed bug", "bed bugs", "bedbugs"),
        lead_in="Bed bug advice: ",
        steps=(
            "Confirm: look for blood spots on sheets and small brown insects in mattress seams.",
            "Contain: wash bedding in hot water, vacuum mattress seams, and use mattress encasements.",
            "Professional heat treatment or insecticide treatment is usually required for elimination.",
        ),
    ),
    FallbackTopic(
        name="ants",
        keywords=("ant", "ants"),
        lead_in="Ant control: ",
        steps=(
            "Identify entry trails and remove food sources.",
            "Use bait stations rather than sprays to target colonies.",
            "Seal entry points and keep surfaces clean.",
        ),
    ),
    FallbackTopic(
        name="fleas",
        keywords=("flea", "fleas"),
        lead_in="Flea control: ",
        steps=(
            "Treat pets with vet-approved flea control, wash bedding, and vacuum carpets frequently.",
            "Consider insecticidal treatment for indoor heavy infestations and treat outdoor resting areas.",
        ),
    ),
    FallbackTopic(
        name="flies",
        keywords=("fly", "flies"),
        lead_in="Fly control: ",
        steps=(
            "Manage waste and keep bins sealed.",
            "Use screens and fly traps where appropriate.",
            "Remove breeding material such as exposed food or animal waste.",
        ),
    ),
)


def _contains_any(text: str, needles: tuple[str, ...]) -> bool:
    return any(needle in text for needle in needles)


def classify_question(question: str, *, safety_first: bool = False) -> str:
    """Name of the rule that answers ``question``.

    Returns one of ``"clarify"``, a topic name, ``"safety"`` or ``"default"``.
    With ``safety_first`` the danger keywords are checked before the pest
    topics, so "poison for termites" is refused instead of answered.
    """
    text = question.lower().strip()

    if len(text) < MIN_QUESTION_CHARS or _contains_any(text, VAGUE_PHRASES):
        return "clarify"

    if safety_first and _contains_any(text, DANGER_KEYWORDS):
        return "safety"

    for topic in FALLBACK_TOPICS:
        if topic.matches(text):
            return topic.name

    if _contains_any(text, DANGER_KEYWORDS):
        return "safety"

    return "default"


_TOPIC_ANSWERS: dict[str, str] = {topic.name: topic.render() for topic in FALLBACK_TOPICS}


def get_local_reply(question: str, *, safety_first: bool = False) -> LocalReply:
    """Answer a pest-control question without calling any AI backend.

    Args:
        question: Free-text user question (may be empty).
        safety_first: Check dangerous-action keywords before pest topics.

    Returns:
        LocalReply with a non-empty answer and a note of either
        ``"using local fallback"`` or ``"safety-first"``.
    """
    rule = classify_question(question, safety_first=safety_first)

    if rule == "clarify":
        return LocalReply(answer=CLARIFYING_ANSWER, note=LOCAL_FALLBACK_NOTE)
    if rule == "safety":
        return LocalReply(answer=SAFETY_ANSWER, note=SAFETY_FIRST_NOTE)
    if rule == "default":
        return LocalReply(answer=DEFAULT_ANSWER, note=LOCAL_FALLBACK_NOTE)
    return LocalReply(answer=_TOPIC_ANSWERS[rule], note=LOCAL_FALLBACK_NOTE)
