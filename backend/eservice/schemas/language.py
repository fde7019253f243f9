from pydantic import BaseModel, Field
from typing import Optional, Dict, List, Any


class LanguageCreate(BaseModel):
    code: Optional[str] = Field(None, max_length=10)
    name: Optional[str] = Field(None, max_length=100)
    native_name: Optional[str] = Field(None, max_length=100)


class TranslationKey(BaseModel):
    # Shape checked by the endpoint so bad input gets "Invalid translation key data"
    key: Any = None
    values: Any = None


class BulkTranslations(BaseModel):
    translations: List[TranslationKey] = []


class TranslationValueUpdate(BaseModel):
    value: str


class TranslationRow(BaseModel):
    key: str
    values: Dict[str, str]
