from __future__ import annotations

import asyncio
import logging
from dataclasses import replace

from factlens.generators.prompt_builder import PromptBuilder
from factlens.models.errors import Err, FactLensError, Ok, Outcome, TransportError
from factlens.models.types import AnalysisMode, AnalysisResult, Upload
from factlens.processors.extractor import check_invariants, extract_result
from factlens.processors.invoker import AnalysisInvoker, ModelResponse
from factlens.processors.normalizer import MediaNormalizer

logger = logging.getLogger(__name__)


def _enrich(result: AnalysisResult, response: ModelResponse) -> AnalysisResult:
    meta = result.meta
    if response.search_queries and not meta.search_queries:
        meta = replace(meta, search_queries=tuple(response.search_queries))
    if not meta.model:
        meta = replace(meta, model=response.model)
    return result if meta is result.meta else replace(result, meta=meta)


class AnalysisPipeline:
    """normalize -> build prompt -> invoke -> extract -> validate.

    ``run`` never raises for pipeline failures: every error kind is returned
    as ``Err`` so the caller handles it in one place.
    """

    def __init__(
        self,
        invoker: AnalysisInvoker,
        normalizer: MediaNormalizer | None = None,
        builder: PromptBuilder | None = None,
    ) -> None:
        self._invoker = invoker
        self._normalizer = normalizer or MediaNormalizer()
        self._builder = builder or PromptBuilder()

    async def run(
        self,
        text: str | None,
        upload: Upload | None = None,
        mode: AnalysisMode | str = AnalysisMode.STANDARD,
    ) -> Outcome:
        try:
            request = await asyncio.to_thread(self._normalizer.normalize, text, upload, mode)
            logger.info("Analyzing %s input in %s mode", request.input_type.value, request.mode.value)
            parts = self._builder.build(request)
            response = await self._invoker.invoke(parts, request.mode)
        except FactLensError as exc:
            logger.warning("Analysis failed [%s]: %s", exc.category, exc)
            return Err(exc)
        except Exception as exc:
            logger.exception("Unexpected failure during analysis: %s", exc)
            return Err(TransportError(str(exc)))

        outcome = extract_result(response.text)
        if isinstance(outcome, Err):
            return outcome

        result = _enrich(outcome.value, response)
        warnings = check_invariants(result)
        logger.info(
            "Analysis complete: verdict=%s claims=%d warnings=%d",
            result.overall_verdict, len(result.claims), len(warnings),
        )
        return Ok(result, tuple(warnings))
