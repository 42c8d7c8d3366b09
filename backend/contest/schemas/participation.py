from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class SubmissionIn(BaseModel):
    # format is checked by participation.validate_email
    email: str | None = None


class SubmissionOut(BaseModel):
    success: bool = True
    message: str
    is_winner: bool

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FailureOut(BaseModel):
    success: bool = False
    message: str
