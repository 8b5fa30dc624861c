"""
JavaScript curriculum taught to Aily.
Six sections, five to eight topics each, from first variables to the browser.
"""

from typing import List, Optional

from aily.models.topic import Topic, TopicSection, Difficulty

B, I, A = Difficulty.BEGINNER, Difficulty.INTERMEDIATE, Difficulty.ADVANCED

# Basics - 8 topics
BASICS_TOPICS = [
    Topic(id="basics-1", section=TopicSection.BASICS, title="Variables (let, const, var)",
          description="Create and use variables. The differences between let, const and var.",
          difficulty=B, estimated_minutes=15),
    Topic(id="basics-2", section=TopicSection.BASICS, title="Data types",
          description="Numbers, strings, booleans, null, undefined and symbols.",
          difficulty=B, estimated_minutes=20),
    Topic(id="basics-3", section=TopicSection.BASICS, title="Operators",
          description="Arithmetic, logical and comparison operators in JavaScript.",
          difficulty=B, estimated_minutes=18),
    Topic(id="basics-4", section=TopicSection.BASICS, title="Conditionals",
          description="if, else, else if and switch for controlling program flow.",
          difficulty=B, estimated_minutes=20),
    Topic(id="basics-5", section=TopicSection.BASICS, title="Loops",
          description="for, while and do-while loops. Controlling repetition.",
          difficulty=B, estimated_minutes=20),
    Topic(id="basics-6", section=TopicSection.BASICS, title="Functions",
          description="Declarations, parameters and return values.",
          difficulty=B, estimated_minutes=25),
    Topic(id="basics-7", section=TopicSection.BASICS, title="Arrays",
          description="Creating and working with arrays. Basic methods and iteration.",
          difficulty=B, estimated_minutes=25),
    Topic(id="basics-8", section=TopicSection.BASICS, title="Objects",
          description="Properties, methods and this. Object basics.",
          difficulty=B, estimated_minutes=25),
]

# Intermediate - 7 topics
INTERMEDIATE_TOPICS = [
    Topic(id="intermediate-1", section=TopicSection.INTERMEDIATE, title="String methods",
          description="trim, split, replace, includes, slice and other text methods.",
          difficulty=I, estimated_minutes=20),
    Topic(id="intermediate-2", section=TopicSection.INTERMEDIATE, title="Array methods",
          description="map, filter, reduce, forEach, find and friends.",
          difficulty=I, estimated_minutes=30),
    Topic(id="intermediate-3", section=TopicSection.INTERMEDIATE, title="Higher-order functions",
          description="Functions that take or return other functions. Callbacks.",
          difficulty=I, estimated_minutes=25),
    Topic(id="intermediate-4", section=TopicSection.INTERMEDIATE, title="Arrow functions",
          description="Arrow function (=>) syntax and how it differs from regular functions.",
          difficulty=I, estimated_minutes=15),
    Topic(id="intermediate-5", section=TopicSection.INTERMEDIATE, title="Destructuring",
          description="Destructuring arrays and objects.",
          difficulty=I, estimated_minutes=20),
    Topic(id="intermediate-6", section=TopicSection.INTERMEDIATE, title="Spread operator",
          description="The spread (...) operator for copying and merging data.",
          difficulty=I, estimated_minutes=18),
    Topic(id="intermediate-7", section=TopicSection.INTERMEDIATE, title="Template literals",
          description="Template strings with interpolation and multi-line text.",
          difficulty=I, estimated_minutes=12),
]

# Advanced - 7 topics
ADVANCED_TOPICS = [
    Topic(id="advanced-1", section=TopicSection.ADVANCED, title="Asynchronous code",
          description="Callbacks, Promises and managing asynchronous operations.",
          difficulty=A, estimated_minutes=35),
    Topic(id="advanced-2", section=TopicSection.ADVANCED, title="Async/Await",
          description="Modern syntax for reading and writing async functions.",
          difficulty=A, estimated_minutes=30),
    Topic(id="advanced-3", section=TopicSection.ADVANCED, title="Event handling",
          description="addEventListener, event listeners and delegation.",
          difficulty=A, estimated_minutes=25),
    Topic(id="advanced-4", section=TopicSection.ADVANCED, title="Scope and closures",
          description="Understanding scope. Closures and where they are useful.",
          difficulty=A, estimated_minutes=25),
    Topic(id="advanced-5", section=TopicSection.ADVANCED, title="Prototypes and inheritance",
          description="Prototypal inheritance and the prototype chain.",
          difficulty=A, estimated_minutes=30),
    Topic(id="advanced-6", section=TopicSection.ADVANCED, title="Modules",
          description="import/export syntax and organizing code in modules.",
          difficulty=A, estimated_minutes=20),
    Topic(id="advanced-7", section=TopicSection.ADVANCED, title="Error handling",
          description="try/catch/finally. Throwing and catching errors.",
          difficulty=A, estimated_minutes=18),
]

# OOP - 6 topics
OOP_TOPICS = [
    Topic(id="oop-1", section=TopicSection.OOP, title="Classes",
          description="ES6 class syntax. Defining classes and creating instances.",
          difficulty=I, estimated_minutes=25),
    Topic(id="oop-2", section=TopicSection.OOP, title="Constructors and methods",
          description="Constructor functions, class methods and the this context.",
          difficulty=I, estimated_minutes=20),
    Topic(id="oop-3", section=TopicSection.OOP, title="Inheritance",
          description="The extends keyword. Inheriting properties and methods.",
          difficulty=A, estimated_minutes=25),
    Topic(id="oop-4", section=TopicSection.OOP, title="Polymorphism",
          description="Overriding methods and polymorphic operations.",
          difficulty=A, estimated_minutes=20),
    Topic(id="oop-5", section=TopicSection.OOP, title="Encapsulation",
          description="Private and public fields. Hiding information.",
          difficulty=A, estimated_minutes=20),
    Topic(id="oop-6", section=TopicSection.OOP, title="Static members",
          description="Defining and using static methods and properties.",
          difficulty=I, estimated_minutes=15),
]

# Applications - 7 topics
APPLICATIONS_TOPICS = [
    Topic(id="applications-1", section=TopicSection.APPLICATIONS, title="APIs and fetch",
          description="The Fetch API for HTTP requests. GET, POST, PUT and DELETE.",
          difficulty=A, estimated_minutes=30),
    Topic(id="applications-2", section=TopicSection.APPLICATIONS, title="Working with JSON",
          description="The JSON format. Parsing and serializing data.",
          difficulty=I, estimated_minutes=15),
    Topic(id="applications-3", section=TopicSection.APPLICATIONS, title="Local Storage",
          description="Storing data in the browser with localStorage and sessionStorage.",
          difficulty=I, estimated_minutes=15),
    Topic(id="applications-4", section=TopicSection.APPLICATIONS, title="Working with dates",
          description="The Date object. Dates and times in JavaScript.",
          difficulty=I, estimated_minutes=20),
    Topic(id="applications-5", section=TopicSection.APPLICATIONS, title="Form validation",
          description="Validating user input and giving feedback.",
          difficulty=I, estimated_minutes=25),
    Topic(id="applications-6", section=TopicSection.APPLICATIONS, title="DOM manipulation",
          description="Selectors, adding and removing elements, changing styles.",
          difficulty=I, estimated_minutes=30),
    Topic(id="applications-7", section=TopicSection.APPLICATIONS, title="Event delegation",
          description="Delegating events for efficient event handling.",
          difficulty=A, estimated_minutes=20),
]

# Web - 5 topics
WEB_TOPICS = [
    Topic(id="web-1", section=TopicSection.WEB, title="HTML5 basics",
          description="HTML5 structure. Semantic elements and forms.",
          difficulty=B, estimated_minutes=20),
    Topic(id="web-2", section=TopicSection.WEB, title="CSS selectors",
          description="CSS selectors and properties. Styling elements.",
          difficulty=B, estimated_minutes=25),
    Topic(id="web-3", section=TopicSection.WEB, title="Flexbox and Grid",
          description="Flexbox and CSS Grid layout techniques.",
          difficulty=I, estimated_minutes=30),
    Topic(id="web-4", section=TopicSection.WEB, title="Responsive design",
          description="Media queries and building responsive sites.",
          difficulty=I, estimated_minutes=25),
    Topic(id="web-5", section=TopicSection.WEB, title="JavaScript in the browser",
          description="Integrating JavaScript with the page. DOM and BOM.",
          difficulty=I, estimated_minutes=20),
]

# All topics combined
ALL_TOPICS = (
    BASICS_TOPICS + INTERMEDIATE_TOPICS + ADVANCED_TOPICS
    + OOP_TOPICS + APPLICATIONS_TOPICS + WEB_TOPICS
)


def get_topics_by_section(section: TopicSection) -> List[Topic]:
    """Get topics belonging to a section."""
    return [topic for topic in ALL_TOPICS if topic.section == section]


def get_topic_by_id(topic_id: str) -> Optional[Topic]:
    return next((topic for topic in ALL_TOPICS if topic.id == topic_id), None)


def find_section(name: str) -> Optional[TopicSection]:
    """Resolve a section name case-insensitively."""
    lowered = name.lower()
    return next((section for section in TopicSection if section.value == lowered), None)
