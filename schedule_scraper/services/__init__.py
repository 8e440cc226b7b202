"""
Services package for the schedule scraper

This package contains the fetch, parse and orchestration components.
"""
from schedule_scraper.services.fetch_types import FetchStatus, ScheduleRow, ScrapeResult, ScrapeState
from schedule_scraper.services.program_fetch_service import ProgramFetcher, build_http_client
from schedule_scraper.services.program_parser_service import filter_rows, format_entry, parse_program
from schedule_scraper.services.scrape_service import ScrapePipeline
from schedule_scraper.services.signature_service import generate_signature

__all__ = [
    'FetchStatus',
    'ProgramFetcher',
    'ScheduleRow',
    'ScrapePipeline',
    'ScrapeResult',
    'ScrapeState',
    'build_http_client',
    'filter_rows',
    'format_entry',
    'generate_signature',
    'parse_program',
]
