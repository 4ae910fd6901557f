"""Value generation for PostgreSQL / Greenplum datatypes."""

import json
import logging
import random
import re
import uuid
from datetime import timezone
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Tuple
from faker import Faker

from .exceptions import UnsupportedDatatypeError


logger = logging.getLogger(__name__)

# base name, optional modifiers, optional time zone suffix, array brackets
_DATATYPE_PATTERN = re.compile(
    r"^(?P<base>[a-z][a-z0-9 ]*?)\s*(?:\((?P<modifiers>[^)]*)\))?"
    r"(?P<zone>\s+with(?:out)?\s+time\s+zone)?(?P<array>(?:\[\])*)$"
)

_ALIASES = {
    "int": "integer",
    "int2": "smallint",
    "int4": "integer",
    "int8": "bigint",
    "decimal": "numeric",
    "float4": "real",
    "float8": "double precision",
    "float": "double precision",
    "varchar": "character varying",
    "char": "character",
    "bpchar": "character",
    "bool": "boolean",
    "timestamp": "timestamp without time zone",
    "timestamptz": "timestamp with time zone",
    "time": "time without time zone",
    "timetz": "time with time zone",
    "varbit": "bit varying",
}

_INTEGER_RANGES = {
    "smallint": (-32768, 32767),
    "integer": (-2147483648, 2147483647),
    "bigint": (-9223372036854775808, 9223372036854775807),
}

# element types whose array members need double quoting
_QUOTED_ARRAY_ELEMENTS = {
    "character varying", "character", "text", "json", "jsonb", "xml",
    "date", "time without time zone", "time with time zone",
    "timestamp without time zone", "timestamp with time zone", "interval",
    "inet", "cidr", "macaddr", "money", "bytea", "point",
}


def parse_datatype(datatype: str) -> Tuple[str, List[int], int]:
    """Split a type name into canonical base name, modifiers and array depth.

    >>> parse_datatype("character varying(20)[]")
    ('character varying', [20], 1)
    """
    match = _DATATYPE_PATTERN.match(datatype.strip().lower())
    if not match:
        raise UnsupportedDatatypeError(datatype)

    base = match.group("base").strip()
    if match.group("zone"):
        base = f"{base} {' '.join(match.group('zone').split())}"
    base = _ALIASES.get(base, base)

    modifiers = []
    if match.group("modifiers"):
        try:
            modifiers = [int(part) for part in match.group("modifiers").split(",")]
        except ValueError:
            # typmods such as geometry(Point,4326) belong to extension types
            raise UnsupportedDatatypeError(datatype)

    depth = match.group("array").count("[]")
    return base, modifiers, depth


class DataTypeGenerator:
    """Builds text literals accepted by COPY for a declared datatype."""

    def __init__(self, seed: Optional[int] = None, max_array_length: int = 5):
        self.faker = Faker()
        self.max_array_length = max_array_length

        if seed is not None:
            random.seed(seed)
            Faker.seed(seed)

        self._generators: Dict[str, Callable[[List[int]], str]] = {
            "smallint": lambda mods: self._generate_integer("smallint"),
            "integer": lambda mods: self._generate_integer("integer"),
            "bigint": lambda mods: self._generate_integer("bigint"),
            "numeric": self._generate_numeric,
            "real": self._generate_float,
            "double precision": self._generate_float,
            "money": self._generate_money,
            "character varying": self._generate_varchar,
            "character": self._generate_char,
            "text": self._generate_text,
            "boolean": self._generate_boolean,
            "date": self._generate_date,
            "time without time zone": self._generate_time,
            "time with time zone": self._generate_timetz,
            "timestamp without time zone": self._generate_timestamp,
            "timestamp with time zone": self._generate_timestamptz,
            "interval": self._generate_interval,
            "uuid": lambda mods: str(uuid.uuid4()),
            "json": self._generate_json,
            "jsonb": self._generate_json,
            "inet": lambda mods: self.faker.ipv4(),
            "cidr": lambda mods: self.faker.ipv4(network=True),
            "macaddr": lambda mods: self.faker.mac_address(),
            "bytea": self._generate_bytea,
            "bit": self._generate_bit,
            "bit varying": self._generate_varbit,
            "point": self._generate_point,
            "xml": self._generate_xml,
        }

    @property
    def supported_datatypes(self) -> List[str]:
        return sorted(self._generators)

    def build(self, datatype: str) -> str:
        """Generate one literal for the datatype.

        Raises:
            UnsupportedDatatypeError: no generator handles the datatype.
        """
        base, modifiers, depth = parse_datatype(datatype)
        generator = self._generators.get(base)
        if generator is None:
            raise UnsupportedDatatypeError(datatype)

        if depth:
            return self._generate_array(base, generator, modifiers, depth)
        return generator(modifiers)

    def _generate_array(self, base: str, generator: Callable[[List[int]], str],
                        modifiers: List[int], depth: int) -> str:
        """Generate a PostgreSQL array literal, nesting one level per dimension."""
        size = random.randint(1, self.max_array_length)
        if depth > 1:
            elements = [self._generate_array(base, generator, modifiers, depth - 1)
                        for _ in range(size)]
        else:
            elements = [self._array_element(base, generator(modifiers)) for _ in range(size)]
        return "{" + ",".join(elements) + "}"

    def _array_element(self, base: str, value: str) -> str:
        if base not in _QUOTED_ARRAY_ELEMENTS:
            return value
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'

    def _generate_integer(self, datatype: str) -> str:
        low, high = _INTEGER_RANGES[datatype]
        return str(random.randint(low, high))

    def _generate_numeric(self, modifiers: List[int]) -> str:
        """Generate a numeric value within precision and scale."""
        precision = modifiers[0] if modifiers else 10
        scale = modifiers[1] if len(modifiers) > 1 else (0 if modifiers else 2)

        max_integer = 10 ** max(precision - scale, 0) - 1
        integer_part = random.randint(0, max_integer)
        if scale <= 0:
            return str(integer_part)
        decimal_part = random.randint(0, 10 ** scale - 1)
        return str(Decimal(f"{integer_part}.{decimal_part:0{scale}d}"))

    def _generate_float(self, modifiers: List[int]) -> str:
        return repr(round(random.uniform(-1000000.0, 1000000.0), 6))

    def _generate_money(self, modifiers: List[int]) -> str:
        return f"{random.uniform(0.01, 999999.99):.2f}"

    def _generate_varchar(self, modifiers: List[int]) -> str:
        max_length = modifiers[0] if modifiers else 255
        return self._fit_text(self.faker.sentence(), max_length)

    def _generate_char(self, modifiers: List[int]) -> str:
        length = modifiers[0] if modifiers else 1
        return self.faker.pystr(min_chars=length, max_chars=length)

    def _generate_text(self, modifiers: List[int]) -> str:
        return self.faker.paragraph()

    def _generate_boolean(self, modifiers: List[int]) -> str:
        return random.choice(["true", "false"])

    def _generate_date(self, modifiers: List[int]) -> str:
        return self.faker.date_between(start_date="-10y", end_date="+1y").isoformat()

    def _generate_time(self, modifiers: List[int]) -> str:
        return self.faker.time()

    def _generate_timetz(self, modifiers: List[int]) -> str:
        return f"{self.faker.time()}+00"

    def _generate_timestamp(self, modifiers: List[int]) -> str:
        value = self.faker.date_time_between(start_date="-10y", end_date="now")
        return value.isoformat(sep=" ")

    def _generate_timestamptz(self, modifiers: List[int]) -> str:
        value = self.faker.date_time_between(start_date="-10y", end_date="now", tzinfo=timezone.utc)
        return value.isoformat(sep=" ")

    def _generate_interval(self, modifiers: List[int]) -> str:
        return f"{random.randint(0, 365)} days {random.randint(0, 23)} hours"

    def _generate_json(self, modifiers: List[int]) -> str:
        document = {
            "id": random.randint(1, 100000),
            "name": self.faker.name(),
            "email": self.faker.email(),
            "active": random.choice([True, False]),
            "tags": self.faker.words(nb=random.randint(1, 3)),
        }
        return json.dumps(document)

    def _generate_bytea(self, modifiers: List[int]) -> str:
        size = random.randint(1, 64)
        return "\\x" + "".join(f"{random.randint(0, 255):02x}" for _ in range(size))

    def _generate_bit(self, modifiers: List[int]) -> str:
        length = modifiers[0] if modifiers else 1
        return "".join(random.choice("01") for _ in range(length))

    def _generate_varbit(self, modifiers: List[int]) -> str:
        max_length = modifiers[0] if modifiers else 64
        return "".join(random.choice("01") for _ in range(random.randint(1, max_length)))

    def _generate_point(self, modifiers: List[int]) -> str:
        longitude = round(random.uniform(-180, 180), 6)
        latitude = round(random.uniform(-90, 90), 6)
        return f"({longitude},{latitude})"

    def _generate_xml(self, modifiers: List[int]) -> str:
        root_tag = random.choice(["data", "record", "item", "document"])
        return (f"<{root_tag}><id>{random.randint(1, 10000)}</id>"
                f"<name>{self.faker.last_name()}</name></{root_tag}>")

    @staticmethod
    def _fit_text(value: str, max_length: int) -> str:
        value = value[:max_length].rstrip()
        return value or "x"
