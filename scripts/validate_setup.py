#!/usr/bin/env python
"""Validate setup - check dependencies, configuration and the embedding provider."""
import sys
import asyncio
from pathlib import Path

# Color codes for terminal output
GREEN = "\033[92m"
RED = "\033[91m"
YELLOW = "\033[93m"
BLUE = "\033[94m"
RESET = "\033[0m"

def print_success(msg):
    print(f"{GREEN}✓{RESET} {msg}")

def print_error(msg):
    print(f"{RED}✗{RESET} {msg}")

def print_info(msg):
    print(f"{BLUE}ℹ{RESET} {msg}")

def print_warning(msg):
    print(f"{YELLOW}⚠{RESET} {msg}")

def print_section(title):
    print(f"\n{BLUE}{'='*60}{RESET}")
    print(f"{BLUE}{title:^60}{RESET}")
    print(f"{BLUE}{'='*60}{RESET}\n")

async def main():
    print_section("docintel - Setup Validation")

    errors = []
    warnings = []

    # 1. Python version check
    print_section("1. Python Environment")
    python_version = f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
    print_info(f"Python version: {python_version}")
    if sys.version_info >= (3, 11):
        print_success("Python version >= 3.11")
    else:
        print_error("Python version < 3.11 (required)")
        errors.append("Python version too old")

    in_venv = hasattr(sys, 'base_prefix') and sys.base_prefix != sys.prefix
    if in_venv:
        print_success("Running in virtual environment")
    else:
        print_warning("Not running in virtual environment (recommended)")
        warnings.append("Not in venv")

    # 2. Import core dependencies
    print_section("2. Core Dependencies")

    dependencies = [
        ("quart", "Quart web framework"),
        ("httpx", "HTTP client"),
        ("numpy", "Vector math"),
        ("pydantic", "Data validation"),
        ("yaml", "YAML frontmatter"),
        ("pypdf", "PDF extraction"),
        ("docx", "Word extraction"),
        ("structlog", "Structured logging"),
        ("pytest", "Testing framework"),
    ]

    for module_name, description in dependencies:
        try:
            __import__(module_name)
            print_success(f"{description:30} ({module_name})")
        except ImportError as e:
            print_error(f"{description:30} ({module_name}) - {e}")
            errors.append(f"Missing: {module_name}")

    # 3. Test configuration
    print_section("3. Configuration")

    try:
        # Add parent directory to path to import docintel
        sys.path.insert(0, str(Path(__file__).parent.parent))
        from docintel import config
        from docintel.rag.chunker import TextChunker

        print_success("Config loaded successfully")
        print_info(f"  Embedding provider: {config.EMBEDDING_PROVIDER}")
        print_info(f"  Embedding model: {config.EMBEDDING_MODEL}")
        print_info(f"  Embedding dimension: {config.EMBEDDING_DIMENSION}")
        print_info(f"  Chunk size: {config.CHUNK_SIZE} words (overlap {config.CHUNK_OVERLAP})")

        TextChunker()
        print_success("Chunking parameters valid")

    except Exception as e:
        print_error(f"Failed to load config: {e}")
        errors.append("Config loading failed")
        return errors, warnings

    # 4. Embedding provider
    print_section("4. Embedding Provider")

    try:
        from docintel.embedding_client import create_embedding_provider
        provider = create_embedding_provider()
    except ValueError as e:
        print_error(str(e))
        errors.append("Unknown embedding provider")
        provider = None
    else:
        if provider is None:
            print_warning("No embedding provider available; search will use fallback vectors")
            if config.EMBEDDING_PROVIDER == "openai":
                print_info("  Set OPENAI_API_KEY, or EMBEDDING_PROVIDER=ollama")
            warnings.append("Embeddings unavailable")

    if provider is not None:
        try:
            vectors = await provider.embed(["test"])
            dimension = len(vectors[0]) if vectors else 0

            if dimension == config.EMBEDDING_DIMENSION:
                print_success(f"Embedding API working (dimension: {dimension})")
            else:
                print_error(
                    f"Embedding dimension {dimension} does not match "
                    f"EMBEDDING_DIMENSION={config.EMBEDDING_DIMENSION}"
                )
                errors.append("Embedding dimension mismatch")

        except Exception as e:
            print_error(f"Embedding API test failed: {e}")
            errors.append(f"API test failed: {e}")

    # 5. Summary
    print_section("Summary")

    if not errors:
        print_success("All checks passed! ✨")
    else:
        print_error(f"Found {len(errors)} error(s):")
        for i, error in enumerate(errors, 1):
            print(f"  {i}. {error}")

    if warnings:
        print_warning(f"\nFound {len(warnings)} warning(s):")
        for i, warning in enumerate(warnings, 1):
            print(f"  {i}. {warning}")

    print()
    return errors, warnings

if __name__ == "__main__":
    errors, warnings = asyncio.run(main())
    sys.exit(1 if errors else 0)
