"""Challenge fulfillers, keyed by the challenge type they solve."""
from typing import Dict
from typing import Type

from acme_issuer._internal.plugins.common import ChallengeFulfiller
from acme_issuer._internal.plugins.dns_route53 import Dns01Fulfiller
from acme_issuer._internal.plugins.webroot import Http01Fulfiller

FULFILLERS: Dict[str, Type[ChallengeFulfiller]] = {
    Http01Fulfiller.typ: Http01Fulfiller,
    Dns01Fulfiller.typ: Dns01Fulfiller,
}
