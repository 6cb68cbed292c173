"""Forms for the link placer app.

The forms define the inputs of the two placement steps: the document
(and optionally the site it belongs to) that is reduced into model input,
and the model's raw answer that is validated and placed into the document.
"""

from __future__ import annotations

from django import forms

from .engine import parse_analysis, parse_model_response
from .engine.types import CandidateSuggestion, ContentAnalysis
from .models import Domain


class DocumentForm(forms.Form):
    """Form carrying the HTML document to enrich."""

    domain = forms.ModelChoiceField(
        queryset=Domain.objects.all(),
        required=False,
        label='Domain',
        help_text='Choose which site the document belongs to.'
    )
    content = forms.CharField(
        widget=forms.Textarea(
            attrs={
                'rows': 18,
                'placeholder': 'Paste the article HTML you want to enrich...'
            }
        ),
        label='Content',
        help_text='The full page or an HTML fragment.'
    )


class PlacementForm(DocumentForm):
    """Form used to place the model's suggestions into a document."""

    document_key = forms.CharField(
        required=False,
        max_length=255,
        label='Document key',
        help_text='Optional. Runs sharing a key build on the links accepted before.'
    )
    candidates = forms.CharField(
        widget=forms.Textarea(attrs={'rows': 10}),
        label='Model suggestions',
        help_text='The raw JSON answer of the suggestion model.'
    )
    analysis = forms.CharField(
        widget=forms.Textarea(attrs={'rows': 4}),
        required=False,
        label='Content analysis',
        help_text='Optional. The analysis answer; decision stage pages favour money page links.'
    )
    audit = forms.CharField(
        widget=forms.Textarea(attrs={'rows': 4}),
        required=False,
        label='Link audit',
        help_text='Optional. The audit answer for the links already in the document.'
    )
    inbound = forms.CharField(
        widget=forms.Textarea(attrs={'rows': 4}),
        required=False,
        label='Inbound suggestions',
        help_text='Optional. Pages of the site that should link to this document.'
    )

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.candidate_errors: list[str] = []
        self.analysis_errors: list[str] = []

    def clean_candidates(self) -> list[CandidateSuggestion]:
        """Parse the model answer, keeping the readable per-candidate errors."""

        raw_value = self.cleaned_data.get('candidates', '')
        candidates, errors = parse_model_response(raw_value)
        self.candidate_errors = errors
        if not candidates:
            message = errors[0] if errors else 'The model answer contains no suggestions.'
            raise forms.ValidationError(message)
        return candidates

    def clean_analysis(self) -> ContentAnalysis | None:
        """Parse the optional analysis answer; an unusable one is reported, not fatal."""

        raw_value = self.cleaned_data.get('analysis', '')
        if not raw_value.strip():
            return None
        analysis, errors = parse_analysis(raw_value)
        self.analysis_errors = errors
        return analysis
