from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, List, Literal, Optional, Union

SequentialMode = Literal["disabled", "auto"]
ResponseFormat = Literal["url", "b64_json"]


class TextToImageParams(BaseModel):
    prompt: str
    size: Optional[str] = None
    model: Optional[str] = None
    sequential: Optional[SequentialMode] = None
    response_format: Optional[ResponseFormat] = None
    watermark: bool = False
    n: Optional[int] = Field(None, ge=1, description="Number of images to generate.")


class ImageToImageParams(TextToImageParams):
    # Left optional so the request builder owns the "invalid image" decision.
    image: Optional[Union[str, List[str]]] = None


class TextToImagePayload(TextToImageParams):
    """Body accepted by ``POST /api/ai/t2i``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    prompt: str = ""
    response_format: Optional[ResponseFormat] = "url"
    api_key: Optional[str] = Field(None, alias="apiKey")

    def to_params(self) -> TextToImageParams:
        return TextToImageParams(**self.model_dump(exclude={"api_key"}))


class ImageToImagePayload(ImageToImageParams):
    """Body accepted by ``POST /api/ai/i2i``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    prompt: str = ""
    response_format: Optional[ResponseFormat] = "url"
    api_key: Optional[str] = Field(None, alias="apiKey")

    def to_params(self) -> ImageToImageParams:
        return ImageToImageParams(**self.model_dump(exclude={"api_key"}))


class ArkImageItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    url: Optional[str] = None
    b64_json: Optional[str] = None
    size: Optional[str] = None


class ArkError(BaseModel):
    model_config = ConfigDict(extra="allow")

    code: Optional[Union[str, int]] = None
    message: Optional[str] = None


class ArkResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    model: Optional[str] = None
    created: Optional[int] = None
    data: Optional[List[ArkImageItem]] = None
    images: Optional[List[ArkImageItem]] = None
    usage: Optional[Any] = None
    error: Optional[ArkError] = None


class TaskStatus(str, Enum):
    PENDING = "pending"
    GENERATING = "generating"
    SUCCESS = "success"
    ERROR = "error"


class GenerationTask(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str
    source: Any = None
    preview_data_url: str
    status: TaskStatus = TaskStatus.PENDING
    result_url: Optional[str] = None
    error_message: Optional[str] = None
