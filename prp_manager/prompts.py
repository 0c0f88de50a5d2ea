PRP_BASE_TEMPLATE = """---
name: {{name}}
description: {{description}}
status: draft
---

# PRP: {{title}}

## Goal
{{goal}}

## Why
- Business value and user impact
- Integration with existing features
- Problems this solves and for whom

## What
{{what}}

### Success Criteria
- [ ] The feature behaves as described in the Goal
- [ ] All validation levels pass
- [ ] Documentation is updated

## All Needed Context

### Documentation & References
```yaml
# MUST READ - Include these in your context window
{{references}}
```

### Current Codebase tree
```bash
# Run `tree` in the root of the project to get an overview of the codebase
```

### Desired Codebase tree with files to be added
```bash
# List the files to be added and the responsibility of each
```

### Known Gotchas & Library Quirks
{{gotchas}}

## Implementation Blueprint

### Data models and structure
Create the core data models first to ensure type safety and consistency.

### List of tasks to be completed in order
- [ ] Task 1: Create the data models
- [ ] Task 2: Implement the core logic
- [ ] Task 3: Wire the feature into the entry points
- [ ] Task 4: Add unit tests mirroring the existing test layout

### Per task pseudocode
```python
# Task 2
# PATTERN: follow the closest example under examples/
# GOTCHA: validate input before touching the file system
```

### Integration Points
- CONFIG: new settings and their defaults
- ROUTES / CLI: where the feature is exposed

## Validation Loop

### Level 1: Syntax & Style
```bash
ruff check . --fix
mypy .
```

### Level 2: Unit Tests
```bash
pytest tests/ -v
```

### Level 3: Integration Test
```bash
# Exercise the feature end to end, e.g. run the CLI against a sample input
```

## Final Validation Checklist
- [ ] All tests pass: `pytest tests/ -v`
- [ ] No linting errors: `ruff check .`
- [ ] No type errors: `mypy .`
- [ ] Error cases handled gracefully
- [ ] Logs are informative but not verbose

## Anti-Patterns to Avoid
- Don't create new patterns when existing ones work
- Don't skip validation because "it should work"
- Don't ignore failing tests, fix them
- Don't hardcode values that should be config
"""

INITIAL_TEMPLATE = """## FEATURE:

[Describe the feature to build: be specific about functionality and requirements]

## EXAMPLES:

[List the files under examples/ and explain how each should be used]

## DOCUMENTATION:

[Links to documentation, APIs or libraries needed during development]

## OTHER CONSIDERATIONS:

[Gotchas, constraints and things AI assistants commonly miss]
"""

PROJECT_RULES_TEMPLATE = """### 🔄 Project Awareness & Context
- **Always read `PLANNING.md`** at the start of a new conversation to understand the project's architecture, goals, style, and constraints.
- **Check `TASK.md`** before starting a new task. If the task isn't listed, add it with a brief description and today's date.
- **Use consistent naming conventions, file structure, and architecture patterns** as described in `PLANNING.md`.

### 🧱 Code Structure & Modularity
- **Never create a file longer than 500 lines of code.** If a file approaches this limit, refactor by splitting it into modules or helper files.
- **Organize code into clearly separated modules**, grouped by feature or responsibility.
- **Use clear, consistent imports** (prefer relative imports within packages).

### 🧪 Testing & Reliability
- **Always create Pytest unit tests for new features** (functions, classes, routes, etc).
- **After updating any logic**, check whether existing unit tests need to be updated.
- **Tests should live in a `/tests` folder** mirroring the main app structure.
  - Include at least 1 test for expected use, 1 edge case and 1 failure case.

### ✅ Task Completion
- **Mark completed tasks in `TASK.md`** immediately after finishing them.
- Record progress with `prp-manager --prp <name> --update "<step>=<percentage>"`.

### 📚 Documentation & Explainability
- **Update `README.md`** when new features are added, dependencies change, or setup steps are modified.
- **Comment non-obvious code** and ensure everything is understandable to a mid-level developer.

### 🧠 AI Behavior Rules
- **Never assume missing context. Ask questions if uncertain.**
- **Never hallucinate libraries or functions**: only use known, verified packages.
- **Always confirm file paths and module names** exist before referencing them in code or tests.
"""

GENERATE_PRP_COMMAND = """# Create PRP

## Feature file: $ARGUMENTS

Generate a complete PRP for general feature implementation with thorough research.
Read the feature file first to understand what needs to be created, how the examples
provided help, and any other considerations.

## Research Process

1. **Codebase Analysis**
   - Search for similar features/patterns in the codebase
   - Identify files to reference in the PRP
   - Note existing conventions to follow
   - Check the test patterns for the validation approach

2. **External Research**
   - Library documentation (include specific URLs)
   - Implementation examples
   - Best practices and common pitfalls

## PRP Generation

Start from the scaffold: `prp-manager --generate $ARGUMENTS`
Using PRPs/templates/prp_base.md as the template, fill in:
- Documentation URLs and code examples from the codebase
- Gotchas and library quirks
- The ordered task list and per-task pseudocode
- Executable validation gates for every level

Check the result with `prp-manager --prp <name> --lint` before handing it over.

*** Remember: the goal is one-pass implementation success through comprehensive context. ***
"""

EXECUTE_PRP_COMMAND = """# Execute BASE PRP

Implement a feature using the PRP file.

## PRP File: $ARGUMENTS

## Execution Process

1. **Load PRP**
   - Read the specified PRP file
   - Understand all context and requirements
   - Follow all instructions in the PRP and extend the research if needed

2. **Plan**
   - Break down complex tasks into smaller, manageable steps
   - Seed the tracker from the blueprint tasks: `prp-manager --prp <name> --track`

3. **Execute the plan**
   - Implement all the code
   - Record progress after each task: `prp-manager --prp <name> --update "<task>=100"`

4. **Validate**
   - Run the validation loop: `prp-manager --prp <name> --validate`
   - Fix any failures and re-run until all levels pass

5. **Complete**
   - Ensure all checklist items are done
   - Report completion status with `prp-manager --prp <name> --show`
   - Read the PRP again to ensure everything is implemented
"""

DEFAULT_VALIDATION_LEVELS = [
    ("Level 1: Syntax & Style", ["ruff check .", "mypy ."]),
    ("Level 2: Unit Tests", ["pytest"]),
]

PRP_REQUIRED_SECTIONS = [
    "Goal",
    "Why",
    "What",
    "All Needed Context",
    "Implementation Blueprint",
    "Validation Loop",
]

INITIAL_REQUIRED_SECTIONS = [
    "FEATURE",
    "EXAMPLES",
    "DOCUMENTATION",
    "OTHER CONSIDERATIONS",
]
