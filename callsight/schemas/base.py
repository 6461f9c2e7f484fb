from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """JSON in camelCase (what the dashboard and the LLM schemas use), Python in snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
