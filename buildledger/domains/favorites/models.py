from typing import List

from pydantic import BaseModel


class FavoriteDepartmentsResponse(BaseModel):
    favoriteIds: List[str]


class FavoriteChangeResponse(BaseModel):
    success: bool
    message: str
