from typing import List, Optional, Union

from pydantic import BaseModel


class CalculationRequest(BaseModel):
    around_id: Optional[Union[int, str]] = None
    triggered_by: Optional[str] = None


class CalculationResult(BaseModel):
    success: bool
    message: str
    status: int
    errors: Optional[List[str]] = None

    def body(self) -> dict:
        return self.model_dump(exclude_none=True)
