"""``generateImage`` handler."""

from __future__ import annotations

from pathlib import Path

from strata_agent.core.logging_config import get_logger
from strata_agent.model.client import ModelRequest
from strata_agent.schemas.domain import Action, ActionResult, ActionType

from .base import ActionHandler, ExecutionContext, failure, success
from .definitions import ImageInput

logger = get_logger(__name__)

IMAGE_RESPONSE_MODALITIES = ["TEXT", "IMAGE"]
DEFAULT_IMAGE_DIR = "generated-images"


def image_extension(mime_type: str) -> str:
    if "png" in mime_type:
        return ".png"
    if "jpeg" in mime_type or "jpg" in mime_type:
        return ".jpg"
    return ".png"


class GenerateImageHandler(ActionHandler[ImageInput]):
    """
    Ask the model for an image and save the first inline image it returns.

    Without ``outputPath`` the image lands in ``generated-images/image_<epoch ms><ext>``.
    A response without any image is a failed result carrying the model's text.
    """

    payload_model = ImageInput

    @property
    def name(self) -> ActionType:
        return ActionType.generate_image

    async def handle(self, ctx: ExecutionContext, action: Action, payload: ImageInput) -> ActionResult:
        model_client = ctx.resolve_model_client()
        if model_client is None:
            return failure(action, "No model client configured for image generation")
        root = ctx.paths.require_root()

        response = await model_client.generate_content(
            ModelRequest(
                model=ctx.settings.effective_image_model,
                prompt=payload.prompt,
                response_modalities=IMAGE_RESPONSE_MODALITIES,
            )
        )
        if not response.images:
            message = "Image generation did not return an image. " + (response.text or "")
            logger.error(message)
            return failure(action, message.strip())

        image = response.images[0]
        if payload.output_path:
            target = ctx.paths.resolve(payload.output_path)
        else:
            epoch_ms = int(ctx.clock().timestamp() * 1000)
            target = root / DEFAULT_IMAGE_DIR / f"image_{epoch_ms}{image_extension(image.mime_type)}"
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(image.decode())

        logger.info(f"Saved generated image to {target}")
        message = f"Image generated and saved to {ctx.paths.display(Path(target))}"
        if response.text:
            message += "\n" + response.text
        return success(action, output_tail=message)
