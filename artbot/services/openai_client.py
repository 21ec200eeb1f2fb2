import asyncio
import base64
import logging

from openai import OpenAI

logger = logging.getLogger(__name__)


class OpenAIClient:
    """
    Image generation, image editing and chat completion.

    Every call makes a single attempt and returns None on any failure
    (API error, timeout, malformed response), so handlers only have to
    check for a missing result.
    """

    def __init__(
        self,
        api_key: str,
        *,
        image_model: str = "dall-e-3",
        image_size: str = "1024x1024",
        edit_model: str = "gpt-image-1",
        chat_model: str = "gpt-4",
        max_tokens: int = 4096,
        timeout: float = 120.0,
        client=None,
    ):
        self.client = client or OpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        self.image_model = image_model
        self.image_size = image_size
        self.edit_model = edit_model
        self.chat_model = chat_model
        self.max_tokens = max_tokens
        self.timeout = timeout

    async def _call(self, fn, **params):
        return await asyncio.wait_for(asyncio.to_thread(fn, **params), timeout=self.timeout)

    async def generate_image(self, prompt: str) -> str | None:
        try:
            resp = await self._call(
                self.client.images.generate,
                model=self.image_model,
                prompt=prompt,
                n=1,
                size=self.image_size,
            )
        except asyncio.TimeoutError:
            logger.warning("image generation timed out after %ss", self.timeout)
            return None
        except Exception:
            logger.exception("Error generating image")
            return None

        data = getattr(resp, "data", None) or []
        url = getattr(data[0], "url", None) if data else None
        if not url:
            logger.warning("Error in image response: %r", resp)
            return None
        return url

    async def edit_image(self, image: bytes, prompt: str) -> bytes | None:
        """Uploads the image bytes with the prompt, returns the edited PNG."""
        try:
            resp = await self._call(
                self.client.images.edit,
                model=self.edit_model,
                image=("photo.jpg", image, "image/jpeg"),
                prompt=prompt,
                n=1,
                size=self.image_size,
            )
        except asyncio.TimeoutError:
            logger.warning("image edit timed out after %ss", self.timeout)
            return None
        except Exception:
            logger.exception("Error editing image")
            return None

        data = getattr(resp, "data", None) or []
        b64 = getattr(data[0], "b64_json", None) if data else None
        if not b64:
            logger.warning("Error in image edit response: %r", resp)
            return None
        try:
            return base64.b64decode(b64)
        except ValueError:
            logger.warning("Image edit returned undecodable data")
            return None

    async def ask(self, question: str) -> str | None:
        try:
            resp = await self._call(
                self.client.chat.completions.create,
                model=self.chat_model,
                messages=[{"role": "user", "content": question}],
                max_tokens=self.max_tokens,
            )
        except asyncio.TimeoutError:
            logger.warning("chat completion timed out after %ss", self.timeout)
            return None
        except Exception:
            logger.exception("Error generating response")
            return None

        choices = getattr(resp, "choices", None) or []
        content = choices[0].message.content if choices else None
        if not content or not content.strip():
            logger.warning("Error in chat response: %r", resp)
            return None
        return content.strip()
