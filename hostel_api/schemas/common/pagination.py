import math

from hostel_api.schemas.common.base import CamelModel


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


class PageMeta(CamelModel):
    total: int
    page: int
    total_pages: int
