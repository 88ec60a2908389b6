__version__ = "0.1.0"
__title__ = "clcred"
__author__ = "Kasra EdalatNejad"
__email__ = "kasra.edalat@epfl.ch"
__license__ = "BSD-3-Clause"
__description__ = "CL credentials: blind issuance and zero-knowledge presentation proofs with predicates."
__copyright__ = "2020, Kasra Edalatnejad  (SPRING Lab, EPFL)"

from clcred.errors import *
from clcred.datatypes import *
from clcred.issuer import *
from clcred.prover import *
from clcred.verifier import *
from clcred.pack import *
