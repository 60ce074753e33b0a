"""
Document Models - stepdoc

Read-only value objects handed to the renderers. ``from_dict`` accepts the
camelCase payloads produced by the editor; ``to_dict`` writes them back.
"""

import logging
import re
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Tuple

from ..exceptions import InvalidDocumentError
from .callouts import Callout, callout_from_dict

logger = logging.getLogger(__name__)


def slugify(text: str, fallback: str = "document") -> str:
    """Lower-case, filesystem-safe version of ``text``"""
    slug = re.sub(r"[^a-z0-9]+", "-", (text or "").lower()).strip("-")
    return slug or fallback


def _parse_callouts(items: Optional[List[Dict[str, Any]]], owner: str) -> Tuple[Callout, ...]:
    callouts = []
    for index, item in enumerate(items or []):
        try:
            callouts.append(callout_from_dict(item))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed callout #{index} on {owner}: {e}")
    return tuple(callouts)


@dataclass(frozen=True)
class SecondaryImage:
    """Secondary ("after") raster with its own callouts"""
    data_url: str
    callouts: Tuple[Callout, ...] = ()


@dataclass(frozen=True)
class Screenshot:
    """A screenshot and the ordered callouts drawn over it"""
    id: str
    data_url: str
    original_data_url: Optional[str] = None
    callouts: Tuple[Callout, ...] = ()
    is_cropped: bool = False
    title: Optional[str] = None
    description: Optional[str] = None
    secondary: Optional[SecondaryImage] = None

    @property
    def has_secondary(self) -> bool:
        return self.secondary is not None

    def with_callout_added(self, callout: Callout) -> "Screenshot":
        return replace(self, callouts=self.callouts + (callout,))

    def with_callout_updated(self, callout: Callout) -> "Screenshot":
        """Replace the callout with the same id, keeping its position in the list"""
        return replace(
            self,
            callouts=tuple(callout if c.id == callout.id else c for c in self.callouts),
        )

    def with_callout_removed(self, callout_id: str) -> "Screenshot":
        return replace(self, callouts=tuple(c for c in self.callouts if c.id != callout_id))

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "dataUrl": self.data_url,
            "callouts": [c.to_dict() for c in self.callouts],
            "isCropped": self.is_cropped,
        }
        if self.original_data_url:
            data["originalDataUrl"] = self.original_data_url
        if self.title:
            data["title"] = self.title
        if self.description:
            data["description"] = self.description
        if self.secondary is not None:
            data["secondaryDataUrl"] = self.secondary.data_url
            data["secondaryCallouts"] = [c.to_dict() for c in self.secondary.callouts]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Screenshot":
        if not isinstance(data, dict):
            raise InvalidDocumentError("Screenshot must be a JSON object")
        screenshot_id = str(data.get("id") or "")
        data_url = data.get("dataUrl") or data.get("data_url")
        if not data_url:
            raise InvalidDocumentError("Screenshot has no dataUrl", {"screenshot": screenshot_id})

        secondary = None
        secondary_url = data.get("secondaryDataUrl")
        if secondary_url:
            secondary = SecondaryImage(
                data_url=secondary_url,
                callouts=_parse_callouts(data.get("secondaryCallouts"), f"{screenshot_id}/secondary"),
            )
        elif data.get("secondaryCallouts"):
            logger.warning(f"Screenshot {screenshot_id}: secondary callouts without a secondary image, dropped")

        return cls(
            id=screenshot_id,
            data_url=data_url,
            original_data_url=data.get("originalDataUrl") or None,
            callouts=_parse_callouts(data.get("callouts"), screenshot_id),
            is_cropped=bool(data.get("isCropped", False)),
            title=data.get("title") or None,
            description=data.get("description") or None,
            secondary=secondary,
        )


@dataclass(frozen=True)
class Resource:
    id: str
    title: str
    url: str
    type: str = "link"  # link | file
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"id": self.id, "type": self.type, "title": self.title, "url": self.url}
        if self.description:
            data["description"] = self.description
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Resource":
        return cls(
            id=str(data.get("id", "")),
            title=str(data.get("title", "")),
            url=str(data.get("url", "")),
            type=data.get("type", "link"),
            description=data.get("description") or None,
        )


@dataclass(frozen=True)
class QuizQuestion:
    question: str
    type: str = "multiple-choice"  # multiple-choice | true-false | short-answer
    options: Tuple[str, ...] = ()
    correct_answer: str = ""
    explanation: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "question": self.question,
            "type": self.type,
            "options": list(self.options),
            "correctAnswer": self.correct_answer,
        }
        if self.explanation:
            data["explanation"] = self.explanation
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuizQuestion":
        answer = data.get("correctAnswer", data.get("correct_answer", ""))
        if isinstance(answer, (list, tuple)):
            answer = ", ".join(str(a) for a in answer)
        return cls(
            question=str(data.get("question", "")),
            type=data.get("type", "multiple-choice"),
            options=tuple(str(o) for o in data.get("options") or ()),
            correct_answer=str(answer),
            explanation=data.get("explanation") or None,
        )


@dataclass(frozen=True)
class Step:
    """
    One step of a procedure.

    ``screenshots`` is the logical list: a legacy single ``screenshot`` slot in
    the payload becomes index 0.
    """
    id: str
    description: str = ""
    title: Optional[str] = None
    detailed_instructions: Optional[str] = None
    notes: Optional[str] = None
    screenshots: Tuple[Screenshot, ...] = ()
    tags: Tuple[str, ...] = ()
    resources: Tuple[Resource, ...] = ()
    quiz_questions: Tuple[QuizQuestion, ...] = ()
    key_takeaway: Optional[str] = None
    estimated_time: Optional[int] = None  # minutes

    @property
    def heading(self) -> str:
        return self.title or self.description or "Untitled step"

    @property
    def primary_screenshot(self) -> Optional[Screenshot]:
        return self.screenshots[0] if self.screenshots else None

    @property
    def has_single_image(self) -> bool:
        """Exactly one screenshot and no secondary raster"""
        return len(self.screenshots) == 1 and not self.screenshots[0].has_secondary

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "description": self.description,
            "screenshots": [s.to_dict() for s in self.screenshots],
            "tags": list(self.tags),
            "resources": [r.to_dict() for r in self.resources],
        }
        optional = {
            "title": self.title,
            "detailedInstructions": self.detailed_instructions,
            "notes": self.notes,
            "keyTakeaway": self.key_takeaway,
            "estimatedTime": self.estimated_time,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        if self.quiz_questions:
            data["quizQuestions"] = [q.to_dict() for q in self.quiz_questions]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Step":
        if not isinstance(data, dict):
            raise InvalidDocumentError("Step must be a JSON object")
        step_id = str(data.get("id") or "")

        screenshots: List[Screenshot] = []
        raw = []
        if data.get("screenshot"):
            raw.append(data["screenshot"])
        raw.extend(data.get("screenshots") or [])

        seen = set()
        for item in raw:
            try:
                shot = Screenshot.from_dict(item)
            except InvalidDocumentError as e:
                logger.warning(f"Step {step_id}: skipping screenshot: {e}")
                continue
            if shot.id and shot.id in seen:
                continue
            seen.add(shot.id)
            screenshots.append(shot)

        estimated = data.get("estimatedTime", data.get("estimated_time"))
        return cls(
            id=step_id,
            description=str(data.get("description") or ""),
            title=data.get("title") or None,
            detailed_instructions=data.get("detailedInstructions") or None,
            notes=data.get("notes") or None,
            screenshots=tuple(screenshots),
            tags=tuple(str(t) for t in data.get("tags") or ()),
            resources=tuple(Resource.from_dict(r) for r in data.get("resources") or ()),
            quiz_questions=tuple(QuizQuestion.from_dict(q) for q in data.get("quizQuestions") or ()),
            key_takeaway=data.get("keyTakeaway") or None,
            estimated_time=int(estimated) if estimated not in (None, "") else None,
        )


def _parse_steps(items: List[Any]) -> List[Step]:
    """Parse every step; a field of the wrong type fails the whole document with the step index"""
    steps = []
    for index, item in enumerate(items):
        try:
            steps.append(Step.from_dict(item))
        except InvalidDocumentError as e:
            raise InvalidDocumentError(e.message, {**e.context, "step": index})
        except (AttributeError, TypeError, ValueError) as e:
            raise InvalidDocumentError(f"Malformed step: {e}", {"step": index})
    return steps


@dataclass(frozen=True)
class Document:
    """A multi-step document: the only input the renderers need"""
    id: str
    title: str
    steps: Tuple[Step, ...] = ()
    topic: str = ""
    date: str = ""
    description: Optional[str] = None
    company_name: Optional[str] = None
    logo: Optional[str] = None
    background_image: Optional[str] = None
    table_of_contents: bool = False
    dark_mode: bool = False
    training_mode: bool = False

    @property
    def slug(self) -> str:
        return slugify(self.title)

    @property
    def screenshot_count(self) -> int:
        return sum(
            len(s.screenshots) + sum(1 for shot in s.screenshots if shot.has_secondary)
            for s in self.steps
        )

    @property
    def estimated_minutes(self) -> int:
        return sum(s.estimated_time or 0 for s in self.steps)

    @property
    def all_tags(self) -> List[str]:
        tags: List[str] = []
        for step in self.steps:
            for tag in step.tags:
                if tag not in tags:
                    tags.append(tag)
        return tags

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "topic": self.topic,
            "date": self.date,
            "steps": [s.to_dict() for s in self.steps],
            "tableOfContents": self.table_of_contents,
            "darkMode": self.dark_mode,
            "trainingMode": self.training_mode,
        }
        optional = {
            "description": self.description,
            "companyName": self.company_name,
            "logo": self.logo,
            "backgroundImage": self.background_image,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Document":
        if not isinstance(data, dict):
            raise InvalidDocumentError("Document must be a JSON object")
        steps = data.get("steps")
        if not isinstance(steps, list):
            raise InvalidDocumentError("Document has no steps list", {"document": data.get("id", "")})

        return cls(
            id=str(data.get("id") or slugify(data.get("title", ""))),
            title=str(data.get("title") or "Untitled document"),
            steps=tuple(_parse_steps(steps)),
            topic=str(data.get("topic") or ""),
            date=str(data.get("date") or ""),
            description=data.get("description") or None,
            company_name=data.get("companyName") or data.get("company_name") or None,
            logo=data.get("logo") or None,
            background_image=data.get("backgroundImage") or None,
            table_of_contents=bool(data.get("tableOfContents", False)),
            dark_mode=bool(data.get("darkMode", False)),
            training_mode=bool(data.get("trainingMode", False)),
        )
