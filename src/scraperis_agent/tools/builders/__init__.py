"""Builders that assemble LangChain tools around the scrape service."""
