from .contact import load_contact_matrix_csv, synthetic_contact_matrix
from .debug_log import write_seirs_debug_log
from .population import AGE_BINS_5YR, load_age_pyramid_5yr, load_population_csv
