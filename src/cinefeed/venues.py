"""Venue configuration loaded into the cinema registry."""

from cinefeed.registry import VenueDefinition

# Booking domains owned by each chain. Chains without registered venues are
# listed too, so their links are recognised as foreign at other venues.
CHAIN_DOMAINS: dict[str, list[str]] = {
    "picturehouse": ["picturehouses.com"],
    "curzon": ["curzon.com"],
    "everyman": ["everymancinema.com"],
    "bfi": ["bfi.org.uk"],
    "odeon": ["odeon.co.uk"],
    "vue": ["myvue.com"],
    "cineworld": ["cineworld.co.uk"],
}

# Ticketing platforms used by many unrelated venues.
AGNOSTIC_DOMAINS: list[str] = [
    "eventbrite.co.uk",
    "eventbrite.com",
    "ticketsource.co.uk",
    "dice.fm",
    "universe.com",
]

VENUES: list[VenueDefinition] = [
    VenueDefinition(
        id="rio-dalston",
        name="Rio Cinema",
        short_name="Rio",
        website="https://riocinema.org.uk",
        job_id="rio",
        area="Dalston",
        address="107 Kingsland High Street",
        postcode="E8 2PB",
        coordinates=(51.5485, -0.0755),
        features=("independent", "repertory", "community", "35mm"),
        legacy_ids=("rio",),
    ),
    VenueDefinition(
        id="garden",
        name="The Garden Cinema",
        short_name="Garden",
        website="https://www.thegardencinema.co.uk",
        job_id="garden",
        area="Covent Garden",
        address="39-41 Parker Street",
        postcode="WC2B 5PQ",
        coordinates=(51.5152, -0.1199),
        features=("independent", "repertory", "arthouse"),
        legacy_ids=("garden-cinema", "the-garden-cinema"),
    ),
    VenueDefinition(
        id="picturehouse-central",
        name="Picturehouse Central",
        short_name="PH Central",
        website="https://www.picturehouses.com/cinema/picturehouse-central",
        job_id="picturehouse",
        chain="picturehouse",
        area="Piccadilly",
        address="Corner of Shaftesbury Avenue & Great Windmill Street",
        postcode="W1D 7DH",
        coordinates=(51.5105, -0.1337),
        features=("chain", "bar"),
        job_config={"cinema_id": "022"},
    ),
    VenueDefinition(
        id="picturehouse-hackney",
        name="Hackney Picturehouse",
        short_name="Hackney PH",
        website="https://www.picturehouses.com/cinema/hackney-picturehouse",
        job_id="picturehouse",
        chain="picturehouse",
        area="Hackney",
        address="270 Mare Street",
        postcode="E8 1HE",
        coordinates=(51.5450, -0.0553),
        features=("chain", "bar"),
        legacy_ids=("hackney-picturehouse",),
        job_config={"cinema_id": "010"},
    ),
    VenueDefinition(
        id="picturehouse-ritzy",
        name="The Ritzy",
        short_name="Ritzy",
        website="https://www.picturehouses.com/cinema/the-ritzy",
        job_id="picturehouse",
        chain="picturehouse",
        area="Brixton",
        address="Brixton Oval, Coldharbour Lane",
        postcode="SW2 1JG",
        coordinates=(51.4619, -0.1150),
        features=("chain", "bar", "historic"),
        legacy_ids=("the-ritzy", "ritzy"),
        job_config={"cinema_id": "004"},
    ),
    VenueDefinition(
        id="picturehouse-greenwich",
        name="Greenwich Picturehouse",
        short_name="Greenwich PH",
        website="https://www.picturehouses.com/cinema/greenwich-picturehouse",
        job_id="picturehouse",
        chain="picturehouse",
        area="Greenwich",
        address="180 Greenwich High Road",
        postcode="SE10 8NN",
        coordinates=(51.4816, -0.0087),
        features=("chain",),
        legacy_ids=("greenwich-picturehouse",),
        job_config={"cinema_id": "021"},
    ),
    VenueDefinition(
        id="picturehouse-clapham",
        name="Clapham Picturehouse",
        short_name="Clapham PH",
        website="https://www.picturehouses.com/cinema/clapham-picturehouse",
        job_id="picturehouse",
        chain="picturehouse",
        area="Clapham",
        address="76 Venn Street",
        postcode="SW4 0AT",
        coordinates=(51.4626, -0.1378),
        features=("chain",),
        legacy_ids=("clapham-picturehouse",),
        job_config={"cinema_id": "020"},
    ),
    VenueDefinition(
        id="picturehouse-gate",
        name="The Gate",
        short_name="Gate",
        website="https://www.picturehouses.com/cinema/the-gate",
        job_id="picturehouse",
        chain="picturehouse",
        area="Notting Hill",
        address="87 Notting Hill Gate",
        postcode="W11 3JZ",
        coordinates=(51.5090, -0.1966),
        features=("chain", "historic"),
        legacy_ids=("the-gate", "gate-picturehouse"),
        job_config={"cinema_id": "016"},
    ),
    VenueDefinition(
        id="picturehouse-east-dulwich",
        name="East Dulwich Picturehouse",
        short_name="East Dulwich PH",
        website="https://www.picturehouses.com/cinema/east-dulwich",
        job_id="picturehouse",
        chain="picturehouse",
        area="East Dulwich",
        address="116a Lordship Lane",
        postcode="SE22 8HD",
        coordinates=(51.4576, -0.0756),
        features=("chain",),
        legacy_ids=("east-dulwich", "east-dulwich-picturehouse"),
        job_config={"cinema_id": "009"},
    ),
    VenueDefinition(
        id="picturehouse-crouch-end",
        name="Crouch End Picturehouse",
        short_name="Crouch End PH",
        website="https://www.picturehouses.com/cinema/crouch-end-picturehouse",
        job_id="picturehouse",
        chain="picturehouse",
        area="Crouch End",
        address="165 Tottenham Lane",
        postcode="N8 9BT",
        coordinates=(51.5797, -0.1232),
        features=("chain",),
        legacy_ids=("crouch-end-picturehouse",),
        job_config={"cinema_id": "024"},
        active=False,
    ),
]
