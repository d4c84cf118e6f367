from .medication import CompletionRecord, MedicationPlanVersion
