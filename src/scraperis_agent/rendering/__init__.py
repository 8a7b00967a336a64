"""Turn finished scrape payloads into prose, JSON, CSV, XML, HTML or images."""

from scraperis_agent.rendering.formatter import ResultFormatter
from scraperis_agent.rendering.materializer import MaterializedResult, ResultMaterializer

__all__ = ["MaterializedResult", "ResultFormatter", "ResultMaterializer"]
