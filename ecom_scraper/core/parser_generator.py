"""
Parser Generator
Generates extractProducts code with a self-checking reflection loop

Each iteration asks the model for code, runs it against the original sample
in the sandbox and validates the output. Failures are fed back into the next
prompt. Accepted code is written to the parser cache.
"""

import logging
from typing import List, Optional

from .code_validator import validate_products
from .config import MAX_ITERATIONS
from .errors import ExecutionError, LLMTransportError, MalformedResponse, ValidationFailed
from .llm_client import LLMClient
from .models import GenerationAttempt, GenerationResult
from .parser_cache import ParserCache
from .prompts import build_initial_messages, build_reflection_messages
from .response_repair import parse_model_response
from .sandbox import Sandbox

logger = logging.getLogger(__name__)


class ParserGenerator:
    """Turns a page sample into cached, self-tested extraction code"""

    def __init__(
        self,
        llm_client: LLMClient,
        parser_cache: ParserCache,
        max_iterations: int = MAX_ITERATIONS
    ):
        self.llm_client = llm_client
        self.parser_cache = parser_cache
        self.max_iterations = max_iterations

    async def generate(
        self,
        sample_text: str,
        url: str,
        title: str = '',
        sandbox: Optional[Sandbox] = None
    ) -> GenerationResult:
        """
        Generate extraction code for a page sample and cache it.

        Args:
            sample_text: Page text the code must parse (also its self-test input)
            url: Page URL, used as the cache key
            title: Page title stored with the parser
            sandbox: Execution host for self-testing. Without one, the first
                code that parses is cached unvalidated.

        Returns:
            GenerationResult; `validated` is False when the iteration budget ran
            out or no sandbox was available

        Raises:
            LLMTransportError: if the model call fails on the final iteration
            MalformedResponse: if no iteration produced any code
        """
        if not sample_text or not sample_text.strip():
            raise ValueError("Cannot generate a parser from an empty sample")

        logger.info(f" Generating parser for {url} ({len(sample_text)} chars of sample)")

        attempt: Optional[GenerationAttempt] = None
        last_code: Optional[str] = None
        last_explanation = ''
        last_error: Optional[str] = None

        for iteration in range(1, self.max_iterations + 1):
            messages, variant = self._build_messages(sample_text, url, attempt)
            logger.info(f"   Iteration {iteration}/{self.max_iterations} ({variant} prompt)")

            try:
                response_text = await self.llm_client.complete(messages)
            except LLMTransportError as e:
                if iteration == self.max_iterations:
                    raise
                logger.warning(f"    Model call failed: {e}")
                last_error = str(e)
                continue

            try:
                parsed = parse_model_response(response_text)
            except MalformedResponse as e:
                logger.warning(f"    {e}")
                last_error = str(e)
                attempt = GenerationAttempt(iteration, variant, code=None, error=str(e))
                continue

            last_code, last_explanation = parsed.code, parsed.explanation

            if sandbox is None:
                logger.warning(" No execution sandbox available, caching code without self-test")
                return self._accept(url, title, parsed.code, parsed.explanation, iteration, validated=False)

            try:
                products = await sandbox.execute(parsed.code, sample_text)
                validate_products(products)
            except (ExecutionError, ValidationFailed) as e:
                logger.warning(f"    {e}")
                last_error = str(e)
                attempt = GenerationAttempt(iteration, variant, code=parsed.code, error=str(e))
                continue

            logger.info(f"    Generated working code ({len(products)} products)")
            return self._accept(
                url, title, parsed.code, parsed.explanation, iteration,
                validated=True, products=products
            )

        if last_code is None:
            raise MalformedResponse(
                f"Code generation failed after {self.max_iterations} iterations: {last_error}"
            )

        logger.warning(f" All {self.max_iterations} iterations failed, caching last attempt anyway")
        return self._accept(url, title, last_code, last_explanation, self.max_iterations, validated=False)

    def _build_messages(self, sample_text: str, url: str, attempt: Optional[GenerationAttempt]):
        if attempt is not None and attempt.code:
            return build_reflection_messages(sample_text, attempt.code, attempt.error, url), 'reflection'
        return build_initial_messages(sample_text, url), 'initial'

    def _accept(
        self,
        url: str,
        title: str,
        code: str,
        explanation: str,
        iterations: int,
        validated: bool,
        products: Optional[List[dict]] = None
    ) -> GenerationResult:
        self.parser_cache.put(url, code, title)
        return GenerationResult(
            code=code,
            explanation=explanation,
            iterations=iterations,
            validated=validated,
            products=products,
            model_used=self.llm_client.model_name
        )
