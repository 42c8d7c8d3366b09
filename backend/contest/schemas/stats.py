from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class StatsOut(BaseModel):
    total_attempts: int
    attempts_today: int
    winners: int
    prizes_remaining: int

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StatsErrorOut(BaseModel):
    error: str
