"""Test-paper data model and the local sample paper.

The paper mirrors the JSON the LLM is asked to produce (camelCase keys on
the wire). Sections form a tagged union keyed by ``SectionType``; each
variant is its own dataclass.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Optional, Union


class SectionType(str, Enum):
    LISTENING = "listening"
    MULTIPLE_CHOICE = "multipleChoice"
    FILL_IN_BLANK = "fillInBlank"
    READING = "reading"
    WRITING = "writing"
    TRUE_FALSE = "trueFalse"


SECTION_LABELS = {
    SectionType.LISTENING: "Listening",
    SectionType.MULTIPLE_CHOICE: "Multiple Choice",
    SectionType.FILL_IN_BLANK: "Fill in the Blanks",
    SectionType.READING: "Reading Comprehension",
    SectionType.WRITING: "Writing",
    SectionType.TRUE_FALSE: "True or False",
}


@dataclass
class Question:
    id: int
    question: str
    answer: str
    explanation: str = ""
    points: float = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Question":
        return cls(
            id=int(data["id"]),
            question=str(data["question"]),
            answer=str(data.get("answer", "")),
            explanation=str(data.get("explanation", "")),
            points=data.get("points", 0),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "question": self.question,
            "answer": self.answer,
            "explanation": self.explanation,
            "points": self.points,
        }


@dataclass
class ChoiceQuestion(Question):
    options: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChoiceQuestion":
        options = data.get("options")
        if not isinstance(options, list) or len(options) < 2:
            raise ValueError(f"Multiple choice question {data.get('id')} needs at least two options")
        base = Question.from_dict(data)
        return cls(**vars(base), options=[str(option) for option in options])

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "options": list(self.options)}


@dataclass
class _SectionBase:
    title: str
    questions: list[Question]

    type: ClassVar[SectionType]
    question_class: ClassVar[type] = Question

    @classmethod
    def from_dict(cls, data: dict[str, Any]):
        raw_questions = data.get("questions") or []
        if not isinstance(raw_questions, list):
            raise ValueError(f"Section {cls.type.value} questions must be a list")
        return cls(
            title=str(data.get("title", SECTION_LABELS[cls.type])),
            questions=[cls.question_class.from_dict(item) for item in raw_questions],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "title": self.title,
            "questions": [question.to_dict() for question in self.questions],
        }


@dataclass
class _MaterialSection(_SectionBase):
    material: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]):
        section = super().from_dict(data)
        if data.get("material"):
            section.material = str(data["material"])
        return section

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.material:
            data["material"] = self.material
        return data


@dataclass
class ListeningSection(_MaterialSection):
    type: ClassVar[SectionType] = SectionType.LISTENING


@dataclass
class MultipleChoiceSection(_SectionBase):
    questions: list[ChoiceQuestion]

    type: ClassVar[SectionType] = SectionType.MULTIPLE_CHOICE
    question_class: ClassVar[type] = ChoiceQuestion


@dataclass
class FillInBlankSection(_SectionBase):
    type: ClassVar[SectionType] = SectionType.FILL_IN_BLANK


@dataclass
class ReadingSection(_MaterialSection):
    type: ClassVar[SectionType] = SectionType.READING


@dataclass
class WritingSection(_SectionBase):
    type: ClassVar[SectionType] = SectionType.WRITING


@dataclass
class TrueFalseSection(_SectionBase):
    type: ClassVar[SectionType] = SectionType.TRUE_FALSE


Section = Union[
    ListeningSection,
    MultipleChoiceSection,
    FillInBlankSection,
    ReadingSection,
    WritingSection,
    TrueFalseSection,
]

SECTION_CLASSES: dict[SectionType, type] = {
    cls.type: cls
    for cls in (
        ListeningSection,
        MultipleChoiceSection,
        FillInBlankSection,
        ReadingSection,
        WritingSection,
        TrueFalseSection,
    )
}


def section_from_dict(data: dict[str, Any]) -> Section:
    """Build the section variant named by ``data["type"]``.

    Raises:
        ValueError: If the type is missing or unknown, or a question is malformed
    """
    try:
        section_type = SectionType(data.get("type"))
    except ValueError as exc:
        raise ValueError(f"Unknown section type: {data.get('type')!r}") from exc
    return SECTION_CLASSES[section_type].from_dict(data)


@dataclass
class AnswerKeyEntry:
    id: int
    answer: str
    explanation: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AnswerKeyEntry":
        return cls(id=int(data["id"]), answer=str(data.get("answer", "")), explanation=str(data.get("explanation", "")))

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "answer": self.answer, "explanation": self.explanation}


@dataclass
class TestPaper:
    __test__ = False  # not a pytest test class

    title: str
    subtitle: str
    instructions: str
    total_score: float
    sections: list[Section] = field(default_factory=list)
    answer_key: list[AnswerKeyEntry] = field(default_factory=list)
    listening_material: Optional[str] = None

    @property
    def question_count(self) -> int:
        return sum(len(section.questions) for section in self.sections)

    @classmethod
    def from_dict(cls, data: Any) -> "TestPaper":
        """Validate a recovered JSON payload and build the typed paper.

        Raises:
            ValueError: If the payload is not a paper (missing sections, bad questions...)
        """
        if not isinstance(data, dict):
            raise ValueError(f"Test paper must be a JSON object, got {type(data).__name__}")
        sections = data.get("sections")
        if not isinstance(sections, list) or not sections:
            raise ValueError("Test paper has no sections")
        try:
            return cls(
                title=str(data.get("title", "")),
                subtitle=str(data.get("subtitle", "")),
                instructions=str(data.get("instructions", "")),
                total_score=data.get("totalScore", 0),
                sections=[section_from_dict(section) for section in sections],
                answer_key=[AnswerKeyEntry.from_dict(entry) for entry in data.get("answerKey") or []],
                listening_material=data.get("listeningMaterial") or None,
            )
        except (KeyError, TypeError, AttributeError) as exc:
            raise ValueError(f"Malformed test paper: {exc}") from exc

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "title": self.title,
            "subtitle": self.subtitle,
            "instructions": self.instructions,
            "totalScore": self.total_score,
            "sections": [section.to_dict() for section in self.sections],
            "answerKey": [entry.to_dict() for entry in self.answer_key],
        }
        if self.listening_material:
            data["listeningMaterial"] = self.listening_material
        return data


@dataclass
class QuestionTypeConfig:
    count: int = 0
    score: float = 0


@dataclass
class QuestionTypes:
    listening: QuestionTypeConfig = field(default_factory=QuestionTypeConfig)
    multiple_choice: QuestionTypeConfig = field(default_factory=QuestionTypeConfig)
    fill_in_blank: QuestionTypeConfig = field(default_factory=QuestionTypeConfig)
    reading: QuestionTypeConfig = field(default_factory=QuestionTypeConfig)
    writing: QuestionTypeConfig = field(default_factory=QuestionTypeConfig)

    def in_paper_order(self) -> list[tuple[SectionType, QuestionTypeConfig]]:
        """Listening always comes first and writing last."""
        return [
            (SectionType.LISTENING, self.listening),
            (SectionType.MULTIPLE_CHOICE, self.multiple_choice),
            (SectionType.FILL_IN_BLANK, self.fill_in_blank),
            (SectionType.READING, self.reading),
            (SectionType.WRITING, self.writing),
        ]


@dataclass
class TestConfig:
    """Paper settings chosen by the user."""

    __test__ = False  # not a pytest test class

    grade: str
    difficulty: str
    theme: str = ""
    knowledge_points: str = ""
    total_score: float = 100
    question_types: QuestionTypes = field(default_factory=QuestionTypes)


GRADE_NAMES = {str(n): f"Grade {n}" for n in range(1, 7)}
DIFFICULTY_NAMES = {"low": "Basic", "medium": "Intermediate", "high": "Advanced"}
PART_NUMERALS = ["I", "II", "III", "IV", "V", "VI"]

SAMPLE_LISTENING_MATERIAL = (
    "Hello everyone! My name is Lucy. I am eight years old. I live in Beijing with my family. "
    "I have a mother, a father, and a little brother. My brother is five years old. "
    "I like to play with my toys and read books. My favorite subject is English. "
    "I also like to draw pictures and sing songs. On weekends, I often go to the park with my family. "
    "We have a lot of fun together!"
)

SAMPLE_READING_PASSAGE = "Tom has a cat. The cat is white."

_SAMPLE_CHOICES = [
    ("What color is the sky?", ["Blue", "Red", "Green", "Yellow"], "A",
     "The sky is blue, so the answer is A. Blue."),
    ("How many days are there in a week?", ["Five", "Six", "Seven", "Eight"], "C",
     "A week has seven days, so the answer is C. Seven."),
    ("What do you say when you meet someone for the first time?",
     ["Goodbye", "Nice to meet you", "See you later", "Good night"], "B",
     "When meeting someone for the first time we say 'Nice to meet you', so the answer is B."),
    ("What is the opposite of 'big'?", ["Small", "Tall", "Fast", "Happy"], "A",
     "The opposite of 'big' is 'small', so the answer is A."),
]


def _sample_question(section_type: SectionType, qid: int, n: int, points: float) -> Question:
    if section_type is SectionType.LISTENING:
        return Question(
            id=qid,
            question=f"Listen and answer: What is the girl's name? (Listening {n})",
            answer="Lucy",
            explanation="The recording begins with 'My name is Lucy', so the answer is Lucy.",
            points=points,
        )
    if section_type is SectionType.MULTIPLE_CHOICE:
        text, options, answer, explanation = _SAMPLE_CHOICES[(n - 1) % len(_SAMPLE_CHOICES)]
        return ChoiceQuestion(
            id=qid,
            question=f"{text} (Sample choice {n})",
            answer=answer,
            explanation=explanation,
            points=points,
            options=list(options),
        )
    if section_type is SectionType.FILL_IN_BLANK:
        return Question(
            id=qid,
            question=f"I _______ a student. (Sample blank {n})",
            answer="am",
            explanation="The subject is 'I', so the verb 'be' becomes 'am': 'I am a student'.",
            points=points,
        )
    if section_type is SectionType.READING:
        return Question(
            id=qid,
            question=f"Read the passage: What color is Tom's cat? (Sample reading {n})",
            answer="White",
            explanation="The passage says 'The cat is white', so Tom's cat is white.",
            points=points,
        )
    return Question(
        id=qid,
        question=f"Write a short passage about your family, at least 50 words. (Sample writing {n})",
        answer=(
            "Sample answer: My family has three people. They are my father, my mother and me. "
            "My father is a teacher. My mother is a doctor. I am a student. We love each other very much."
        ),
        explanation=(
            "Scoring points: 1. complete content introducing family members; 2. correct grammar and "
            "consistent tense; 3. appropriate vocabulary; 4. required length; 5. neat handwriting."
        ),
        points=points,
    )


def build_sample_paper(config: TestConfig) -> TestPaper:
    """Build a complete paper locally, used when the LLM is unavailable.

    Sections follow the fixed order (listening first, writing last) and only
    appear when their count is positive. Question ids run from 1 across the
    whole paper and every question has an answer-key entry.
    """
    sections: list[Section] = []
    answer_key: list[AnswerKeyEntry] = []
    question_id = 1

    for section_type, type_config in config.question_types.in_paper_order():
        if type_config.count <= 0:
            continue
        questions = []
        for n in range(1, type_config.count + 1):
            question = _sample_question(section_type, question_id, n, type_config.score)
            questions.append(question)
            answer_key.append(AnswerKeyEntry(id=question.id, answer=question.answer, explanation=question.explanation))
            question_id += 1

        title = f"Part {PART_NUMERALS[len(sections)]}. {SECTION_LABELS[section_type]}"
        section_cls = SECTION_CLASSES[section_type]
        section = section_cls(title=title, questions=questions)
        if section_type is SectionType.READING:
            section.material = SAMPLE_READING_PASSAGE
        sections.append(section)

    has_listening = config.question_types.listening.count > 0
    grade_name = GRADE_NAMES.get(config.grade, "Primary School")
    difficulty_name = DIFFICULTY_NAMES.get(config.difficulty, "Standard")

    return TestPaper(
        title=f"{grade_name} English {difficulty_name} Test",
        subtitle=f"Theme: {config.theme or 'General Practice'}",
        instructions=(
            f"This paper has {len(sections)} parts and a total of {config.total_score:g} points. "
            "Read every question carefully before answering. Listen closely to the recording "
            "for the listening part. Time allowed: 60 minutes."
        ),
        total_score=config.total_score,
        sections=sections,
        answer_key=answer_key,
        listening_material=SAMPLE_LISTENING_MATERIAL if has_listening else None,
    )
