# src/authnconvert/config/models.py

from typing import Literal, Optional
from pydantic import BaseModel, Field


class ConverterSettings(BaseModel):
    root_namespace: Optional[str] = None      # else discovered from mesh config
    ignore_errors: bool = False               # best-effort output on failure
    trigger_rules: Literal["approximate", "reject"] = "approximate"
    strict_decode: bool = False               # a malformed policy aborts the run
    kube_context: Optional[str] = None
    kubeconfig: Optional[str] = None
    output_format: Literal["yaml", "json"] = "yaml"
    page_size: int = Field(default=500, gt=0)
