# (c) Crown Copyright GCHQ \n
"""
Exceptions and warnings raised while scoring episode records.

Only a missing set of weighting constants stops a scoring run. Everything else
that can go wrong with an individual record (an unclassifiable code, a record
that cannot be linked to its family) is reported as a warning and resolved to
a score, so the batch always completes and the anomaly is visible in the output.
"""


class EpisodeQualityError(Exception):
    """Base class for errors raised by episode_data_quality."""


class MissingWeightingConstantsError(EpisodeQualityError):
    """Raised when weighting is requested without any WeightingConstants configured."""


class UnclassifiableValueWarning(UserWarning):
    """A raw value fell outside every recognised domain and was scored as illegal (1)."""


class MissingRequiredLinkageWarning(UserWarning):
    """A record had a null family-key field and was placed in its own family."""
