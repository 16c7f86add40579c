from pathlib import Path
from typing import Annotated, Literal, Self

from annotated_types import Ge, Le
from pydantic import BaseModel

type ConfigLiteralCase = Literal["lower", "upper"]
type ConfigRecursionLimit = Annotated[int, Ge(1), Le(1024)]  # interpreter recursion limit is raised to fit while demangling
type ConfigSizeLimit = Annotated[int, Ge(1)]


class Config(BaseModel):
    # demangler configuration, supplied by caller or loaded from json file

    # print function names without parameter list (and without member function qualifiers)
    omit_parameter_list: bool = False

    # print template functions without their return type
    omit_return_type: bool = False

    # case of integer literal suffixes and hex-float letters
    literal_case: ConfigLiteralCase = "lower"

    # separate adjacent closing angle brackets, as in `a<b<c> >`
    closing_angle_space: bool = True

    # maximum nesting of grammar productions while parsing, printing allows twice as much
    recursion_limit: ConfigRecursionLimit = 128

    # maximum length of demangled text, also bounds number of visited nodes
    output_size_limit: ConfigSizeLimit = 1 << 20

    # maximum length of mangled symbol
    input_size_limit: ConfigSizeLimit = 1 << 16

    @classmethod
    def default(cls) -> Self:
        return cls()


def load(config_path: Path) -> Config:
    with config_path.open("r") as config_file:
        return Config.model_validate_json(config_file.read())
