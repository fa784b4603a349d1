"""
Reference Book API Router.

Serves registered reference books over HTTP:
- List books with their languages and sizes
- Cached JSON snapshot per language, with the content hash as ETag
- Single-name lookup with default-language fallback
- Case-insensitive name search
"""

from typing import Mapping, Optional

from fastapi import APIRouter, Header, HTTPException, Query, Response
from pydantic import BaseModel, Field

from refbook.flexbook import FlexBook
from refbook.lang import lang_code_to_text


# =============================================================================
# Pydantic Models
# =============================================================================

class BookInfo(BaseModel):
    """Summary of a registered reference book."""
    name: str
    length: int
    languages: list[str] = Field(default_factory=list, description="Language tags, default first")


class BookListResponse(BaseModel):
    count: int
    books: list[BookInfo]


class ItemResponse(BaseModel):
    id: int
    name: str


class SearchResponse(BaseModel):
    query: str
    ids: list[int]


def create_refbook_router(books: Mapping[str, FlexBook], prefix: str = "/refbooks") -> APIRouter:
    """
    Create a router serving ``books`` (book name -> FlexBook).

    The mapping is read on every request, so books registered later are served too.
    """
    router = APIRouter(prefix=prefix, tags=["refbooks"])

    def get_book(book_name: str) -> FlexBook:
        book = books.get(book_name)
        if book is None:
            raise HTTPException(status_code=404, detail=f"Reference book '{book_name}' not found")
        return book

    @router.get("", response_model=BookListResponse)
    async def list_books():
        """List registered reference books."""
        infos = [
            BookInfo(
                name=book_name,
                length=len(book),
                languages=[lang_code_to_text(code) for code in book.languages],
            )
            for book_name, book in sorted(books.items())
        ]
        return BookListResponse(count=len(infos), books=infos)

    @router.get("/{book_name}")
    async def get_book_json(
        book_name: str,
        lang: Optional[str] = Query(None, description="Language tag, default language if omitted"),
        if_none_match: Optional[str] = Header(None),
    ):
        """Return the cached JSON snapshot; 304 when the client copy is current."""
        target = get_book(book_name).book(lang)
        etag = f'"{target.hash()}"'
        if if_none_match is not None and if_none_match == etag:
            return Response(status_code=304, headers={"ETag": etag})
        return Response(content=target.json(), media_type="application/json", headers={"ETag": etag})

    @router.get("/{book_name}/search", response_model=SearchResponse)
    async def search_names(
        book_name: str,
        q: str = Query(..., description="Substring to look for, case-insensitive"),
        lang: Optional[str] = Query(None),
    ):
        ids = get_book(book_name).contains(lang, q)
        return SearchResponse(query=q, ids=ids)

    @router.get("/{book_name}/items/{item_id}", response_model=ItemResponse)
    async def get_item_name(book_name: str, item_id: int, lang: Optional[str] = Query(None)):
        book = get_book(book_name)
        if not book.is_exist(item_id):
            raise HTTPException(status_code=404, detail=f"Item {item_id} not found in '{book_name}'")
        return ItemResponse(id=item_id, name=book.name(lang or book.default_lang_code, item_id))

    return router
