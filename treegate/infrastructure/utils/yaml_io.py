from typing import Any

import yaml
from pydantic import BaseModel


def model_to_yaml(model: BaseModel) -> str:
    """Serialize a model as block-style YAML, omitting unset optional fields."""
    return dump_yaml(model.model_dump(mode="json", exclude_none=True))


def dump_yaml(data: Any) -> str:
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=False)


def yaml_document(model: BaseModel) -> str:
    """YAML document with an explicit `---` start marker, as printed on stdout."""
    return "---\n" + model_to_yaml(model)
