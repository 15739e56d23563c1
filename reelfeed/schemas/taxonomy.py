from pydantic import BaseModel


class TaxonomyNodeOut(BaseModel):
    id: str
    name: str
    slug: str | None = None

    class Config:
        from_attributes = True


class TaxonomyOut(BaseModel):
    categories: list[TaxonomyNodeOut]
    topics: list[TaxonomyNodeOut]
    subjects: list[TaxonomyNodeOut]
