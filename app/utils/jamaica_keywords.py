"""Keyword lists used to seed social media monitoring."""

POLITICAL_PARTIES = [
    "Jamaica Labour Party",
    "JLP",
    "Labour Party",
    "People's National Party",
    "PNP",
    "National Party",
    "National Democratic Movement",
    "NDM",
    "Jamaica Alliance Movement",
    "JAM",
    "United People's Party",
    "UPP",
    "Republican Party of Jamaica",
    "RPJ",
    "Workers Party of Jamaica",
    "WPJ",
    "Democratic Action Congress",
    "DAC",
]

POLITICAL_LEADERS = [
    "Andrew Holness",
    "Prime Minister Holness",
    "Mark Golding",
    "Opposition Leader Golding",
    "Juliet Holness",
    "Olivia Grange",
    "Horace Chang",
    "Daryl Vaz",
    "Nigel Clarke",
    "Fayval Williams",
    "Desmond McKenzie",
    "Edmund Bartlett",
    "Floyd Green",
    "Matthew Samuda",
    "Peter Phillips",
    "Lisa Hanna",
    "Peter Bunting",
    "Phillip Paulwell",
    "Fitz Jackson",
    "Angela Brown Burke",
    "Mikael Phillips",
    "Julian Robinson",
    "Damion Crawford",
    "Anthony Hylton",
]

POLITICAL_COMMENTATORS = [
    "Cliff Hughes",
    "Dionne Jackson Miller",
    "Tyrone Reid",
    "Abka Fitz-Henley",
    "Emily Crooks",
    "Damion Mitchell",
    "Trevor Munroe",
    "Orville Taylor",
    "Brian Meeks",
    "Hume Johnson",
    "Don Anderson",
    "Bill Johnson",
    "Damien King",
    "Andre Haughton",
]

CONSTITUENCIES = [
    "Kingston Central",
    "Kingston East",
    "Kingston West",
    "St. Andrew East Central",
    "St. Andrew East Rural",
    "St. Andrew North Central",
    "St. Andrew North Eastern",
    "St. Andrew North Western",
    "St. Andrew South Central",
    "St. Andrew South Eastern",
    "St. Andrew South Western",
    "St. Andrew West Central",
    "St. Andrew West Rural",
    "St. Andrew Central",
    "St. Thomas Eastern",
    "St. Thomas Western",
    "Portland Eastern",
    "Portland Western",
    "St. Mary Central",
    "St. Mary South Eastern",
    "St. Mary Western",
    "St. Ann North East",
    "St. Ann North West",
    "St. Ann South East",
    "St. Ann South West",
    "Trelawny Northern",
    "Trelawny Southern",
    "St. James Central",
    "St. James East Central",
    "St. James North Western",
    "St. James Southern",
    "Hanover Eastern",
    "Hanover Western",
    "Westmoreland Central",
    "Westmoreland Eastern",
    "Westmoreland Western",
    "St. Elizabeth North Eastern",
    "St. Elizabeth North Western",
    "St. Elizabeth South Eastern",
    "St. Elizabeth South Western",
    "Manchester Central",
    "Manchester North Eastern",
    "Manchester North Western",
    "Manchester Southern",
    "Clarendon Central",
    "Clarendon North Central",
    "Clarendon North Eastern",
    "Clarendon Northern",
    "Clarendon South Eastern",
    "Clarendon South Western",
    "St. Catherine Central",
    "St. Catherine East Central",
    "St. Catherine North Central",
    "St. Catherine North Eastern",
    "St. Catherine North Western",
    "St. Catherine South Central",
    "St. Catherine South Eastern",
    "St. Catherine South Western",
]

ELECTION_KEYWORDS = [
    "election",
    "elections",
    "electoral",
    "vote",
    "voting",
    "voter",
    "ballot",
    "polling",
    "polling station",
    "candidate",
    "campaign",
    "constituency",
    "parliament",
    "government",
    "opposition",
    "democracy",
    "political",
    "manifesto",
    "debate",
    "rally",
    "nomination day",
    "election day",
    "voter registration",
    "turnout",
    "Electoral Office of Jamaica",
    "EOJ",
    "Electoral Commission",
    "Director of Elections",
    "Returning Officer",
    "presiding officer",
    "election observer",
    "ballot box",
    "by-election",
    "general election",
    "Gordon House",
    "Member of Parliament",
]

SOCIAL_ISSUES = [
    "economy",
    "inflation",
    "unemployment",
    "cost of living",
    "minimum wage",
    "poverty",
    "healthcare",
    "hospital",
    "education",
    "school",
    "PATH",
    "housing",
    "infrastructure",
    "road",
    "JUTC",
    "water supply",
    "NWC",
    "JPS",
    "electricity",
    "crime",
    "violence",
    "police",
    "JCF",
    "ZOSO",
    "state of emergency",
    "SOE",
    "extortion",
    "scamming",
    "corruption",
    "agriculture",
    "climate change",
    "bauxite",
    "tourism",
]
