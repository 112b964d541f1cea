import asyncio
import logging
import uuid
from typing import Any, Callable, Dict, Iterable, List, Optional

from pydantic import ValidationError

from xmasmagic.core import generate_image_to_image
from xmasmagic.exceptions import NoImageReturned, PreprocessError
from xmasmagic.models import (
    ArkResponse,
    GenerationTask,
    ImageToImageParams,
    TaskStatus,
)
from xmasmagic.preprocess import ImageSource, prepare_image
from xmasmagic.providers.base_provider import BaseImageProvider

logger = logging.getLogger(__name__)

RETRYABLE = (TaskStatus.PENDING, TaskStatus.ERROR)


def _describe_source(source: ImageSource) -> str:
    if isinstance(source, (bytes, bytearray)):
        return f"<{len(source)} bytes>"
    return str(getattr(source, "name", source))


def extract_image(response: Optional[Dict[str, Any]]) -> Optional[str]:
    """Return the first image reference in a service response, if any.

    URLs are returned as-is; inline payloads become JPEG data URLs.
    """
    if not response:
        return None
    try:
        parsed = ArkResponse.model_validate(response)
    except ValidationError as e:
        logger.warning(f"Unrecognised response shape: {e}")
        return None
    for items in (parsed.data, parsed.images):
        if not items:
            continue
        item = items[0]
        if item.url:
            return item.url
        if item.b64_json:
            return f"data:image/jpeg;base64,{item.b64_json}"
    if parsed.error and parsed.error.message:
        logger.warning(f"Service reported an error: {parsed.error.message}")
    return None


class TaskTracker:
    """Per-image generation tasks keyed by id.

    ``generate_all`` fans out one remote call per eligible task. Every task
    settles on its own; a failure only ever touches its own entry.
    """

    def __init__(
        self,
        provider: Optional[BaseImageProvider] = None,
        max_concurrency: Optional[int] = None,
        provider_factory: Optional[Callable[[], BaseImageProvider]] = None,
    ):
        # A shared provider must only be used from one event loop. Pass a
        # factory instead to get a fresh provider per batch.
        self.provider = provider
        self.provider_factory = provider_factory
        self.max_concurrency = max_concurrency
        self._tasks: Dict[str, GenerationTask] = {}

    @property
    def tasks(self) -> List[GenerationTask]:
        return list(self._tasks.values())

    @property
    def pending_count(self) -> int:
        return sum(1 for t in self._tasks.values() if t.status == TaskStatus.PENDING)

    @property
    def is_generating(self) -> bool:
        return any(t.status == TaskStatus.GENERATING for t in self._tasks.values())

    def get(self, task_id: str) -> Optional[GenerationTask]:
        return self._tasks.get(task_id)

    def add_tasks(self, files: Iterable[ImageSource]) -> List[GenerationTask]:
        created: List[GenerationTask] = []
        for source in files:
            try:
                preview = prepare_image(source)
            except PreprocessError as e:
                # Unreadable files are skipped, not turned into failed tasks.
                logger.warning(f"Skipping {_describe_source(source)}: {e}")
                continue
            task = GenerationTask(
                id=uuid.uuid4().hex, source=source, preview_data_url=preview
            )
            self._tasks[task.id] = task
            created.append(task)
        return created

    def remove_task(self, task_id: str) -> Optional[GenerationTask]:
        return self._tasks.pop(task_id, None)

    def _update(self, task_id: str, **changes: Any) -> None:
        task = self._tasks.get(task_id)
        if task is None:
            logger.debug(f"Task {task_id} was removed, dropping late result")
            return
        for key, value in changes.items():
            setattr(task, key, value)

    async def generate_all(
        self,
        prompt: str,
        size: Optional[str] = None,
        api_key: Optional[str] = None,
    ) -> List[GenerationTask]:
        """Generate every pending or failed task. Never raises."""
        selected = [t for t in self._tasks.values() if t.status in RETRYABLE]
        if not selected:
            return []
        provider = self.provider
        owned = provider is None and self.provider_factory is not None
        if owned:
            provider = self.provider_factory()
        # Flip everything before the first await so no selected task is
        # observable as pending/error while its call is in flight.
        for task in selected:
            self._update(task.id, status=TaskStatus.GENERATING, error_message=None)

        semaphore = (
            asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None
        )
        logger.info(f"Generating {len(selected)} task(s)")
        try:
            await asyncio.gather(
                *(
                    self._run(task, prompt, size, api_key, provider, semaphore)
                    for task in selected
                )
            )
        finally:
            if owned:
                await provider.close()
        return selected

    async def _run(
        self,
        task: GenerationTask,
        prompt: str,
        size: Optional[str],
        api_key: Optional[str],
        provider: Optional[BaseImageProvider],
        semaphore: Optional[asyncio.Semaphore],
    ) -> None:
        try:
            params = ImageToImageParams(
                image=task.preview_data_url,
                prompt=prompt,
                size=size,
                response_format="url",
                sequential="disabled",
            )
            if semaphore is None:
                response = await generate_image_to_image(params, api_key, provider)
            else:
                async with semaphore:
                    response = await generate_image_to_image(
                        params, api_key, provider
                    )
            result = extract_image(response)
            if not result:
                raise NoImageReturned()
        except Exception as e:
            logger.error(f"Task {task.id} failed: {e}")
            self._update(task.id, status=TaskStatus.ERROR, error_message=str(e))
            return
        logger.info(f"Task {task.id} succeeded")
        self._update(task.id, status=TaskStatus.SUCCESS, result_url=result)
