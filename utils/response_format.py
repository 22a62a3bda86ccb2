from typing import Any, Dict, List, Literal
from pydantic import BaseModel, ConfigDict, Field


class JsonSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    strict: bool = False
    schema_: Dict[str, Any] = Field(..., alias="schema")


class ResponseSchema(BaseModel):
    type: Literal["json_schema"] = "json_schema"
    json_schema: JsonSchema

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class QuestionItem(BaseModel):
    question: str = Field(
        ...,
        description="The question text. Do not include the options in the question text",
    )
    options: List[str] = Field(
        ...,
        description="Exactly four answer options, plain text without letter prefixes",
    )
    correct_answer: int = Field(
        ...,
        description="Zero-based index (0-3) of the single correct option",
    )
    explanation: str = Field(
        ...,
        description="Brief explanation of why the correct option is right, based on the given text only",
    )


class QuestionResponse(BaseModel):
    questions: List[QuestionItem] = Field(
        default_factory=list,
        description="List of questions generated",
    )


def question_response_schema() -> ResponseSchema:
    return ResponseSchema(
        json_schema=JsonSchema(
            name="questions",
            schema=QuestionResponse.model_json_schema(),
        )
    )
