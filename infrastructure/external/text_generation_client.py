"""
Text-generation client adapter for the application.
Performs single calls against an OpenAI-compatible chat endpoint; retrying and
model selection are left to the resilience layer.
"""

from typing import Dict, List, Optional

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from config.app_config import AppConfig, get_config
from infrastructure.resilience.error_classification import EmptyResponseError
from utils.logging_config import get_logger


class TextGenerationClient:
    """
    Adapter for the text-generation endpoint.
    Keeps one configured chat client per model.
    """

    def __init__(self, config: Optional[AppConfig] = None):
        self.logger = get_logger(__name__)
        self.config = config or get_config()
        self._chat_clients: Dict[str, ChatOpenAI] = {}

    def get_chat_client(self, model: str) -> ChatOpenAI:
        """
        Get configured ChatOpenAI client for a model

        Args:
            model: Model name understood by the endpoint

        Returns:
            ChatOpenAI: Configured chat client
        """
        if model not in self._chat_clients:
            self._chat_clients[model] = ChatOpenAI(
                model=model,
                temperature=self.config.llm.temperature,
                max_tokens=self.config.llm.max_tokens,
                timeout=self.config.llm.timeout,
                base_url=self.config.api.base_url,
                # The hosted endpoint accepts anonymous calls
                openai_api_key=self.config.api.api_key or "anonymous",
                # Retries are handled by RetryExecutor
                max_retries=0
            )

            self.logger.info(f"Chat client initialized: {model} @ {self.config.api.base_url}")

        return self._chat_clients[model]

    @staticmethod
    def build_messages(prompt: str, system_prompt: str = "") -> List[BaseMessage]:
        messages: List[BaseMessage] = []
        if system_prompt:
            messages.append(SystemMessage(content=system_prompt))
        messages.append(HumanMessage(content=prompt))
        return messages

    def _extract_text(self, response, model: str) -> str:
        text = response.content if isinstance(response.content, str) else str(response.content)
        if not text.strip():
            raise EmptyResponseError(model)

        self.logger.debug(f"Generated {len(text)} chars with {model}")
        return text

    def generate(self, prompt: str, system_prompt: str, model: str) -> str:
        """
        Generate text with a single call

        Args:
            prompt: User prompt
            system_prompt: System instructions
            model: Model name

        Returns:
            Generated text

        Raises:
            EmptyResponseError: If the endpoint returned no text
            openai.OpenAIError: Any failure raised by the endpoint
        """
        response = self.get_chat_client(model).invoke(self.build_messages(prompt, system_prompt))
        return self._extract_text(response, model)

    async def agenerate(self, prompt: str, system_prompt: str, model: str) -> str:
        """Async counterpart of ``generate``"""
        response = await self.get_chat_client(model).ainvoke(self.build_messages(prompt, system_prompt))
        return self._extract_text(response, model)


# Global client instance
_text_generation_client: Optional[TextGenerationClient] = None


def get_text_generation_client() -> TextGenerationClient:
    """Get the global text-generation client instance"""
    global _text_generation_client
    if _text_generation_client is None:
        _text_generation_client = TextGenerationClient()
    return _text_generation_client
