from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    # Wire format is camelCase, Python side stays snake_case
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorResponse(BaseModel):
    error: str
    message: Optional[str] = None


class UploadResponse(ApiModel):
    session_id: str
    fields: List[str]
    message: str


class SessionStatusResponse(ApiModel):
    session_id: str
    fields: List[str]
    answers: Dict[str, str]
    questions: Dict[str, str]
    progress: int
    total: int
    is_completed: bool


class QuestionResponse(ApiModel):
    field: str = ""
    field_type: str = ""
    question: str = ""
    is_ai_phrased: bool = Field(False, alias="isAIPhrased")
    progress: int
    total: int
    done: bool


class AnswerRequest(BaseModel):
    field: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)


class AnswerResponse(ApiModel):
    message: str
    field: str
    progress: int
    total: int


class GenerateQuestionsResponse(ApiModel):
    questions: Dict[str, str]
    count: int
    message: str


class DeleteSessionResponse(ApiModel):
    session_id: str
    message: str
