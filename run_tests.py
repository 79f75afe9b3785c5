#!/usr/bin/env python3
"""
Test runner for the memorial preview renderer.

Provides easy commands to run different groups of tests with proper setup.
"""

import sys
import subprocess
import argparse
from pathlib import Path

UNIT_TESTS = [
    'tests/test_layouts.py',
    'tests/test_grid.py',
    'tests/test_photo.py',
    'tests/test_typeset.py',
    'tests/test_divider.py',
    'tests/test_gestures.py',
    'tests/test_scheduler.py',
    'tests/test_utils.py',
    'tests/test_errors.py',
    'tests/test_config.py',
]

RENDER_TESTS = [
    'tests/test_renderer.py',
    'tests/test_proof.py',
]


def setup_test_environment():
    """Set up the test environment."""
    # Add the project root to Python path
    project_root = Path(__file__).parent
    if str(project_root) not in sys.path:
        sys.path.insert(0, str(project_root))


def run_pytest(paths, verbose=False, coverage=False, label="tests"):
    cmd = [sys.executable, '-m', 'pytest'] + list(paths)

    if verbose:
        cmd.append('-v')

    if coverage:
        cmd.extend(['--cov=memorial_preview', '--cov-report=html', '--cov-report=term'])

    print(f"🧪 Running {label}...")
    return subprocess.run(cmd).returncode


def check_dependencies():
    """Check if test dependencies are installed."""
    required_packages = {
        'pytest': 'pytest',
        'pytest-cov': 'pytest_cov',
        'pillow': 'PIL',
        'numpy': 'numpy',
        'pydantic': 'pydantic',
        'pyyaml': 'yaml',
        'loguru': 'loguru',
        'python-dotenv': 'dotenv',
    }

    missing_packages = []

    for package, module in required_packages.items():
        try:
            __import__(module)
        except ImportError:
            missing_packages.append(package)

    if missing_packages:
        print("❌ Missing required packages:")
        for package in missing_packages:
            print(f"   - {package}")
        print("\nInstall missing packages with:")
        print("   pip install -e .[test]")
        return False

    print("✅ All test dependencies are installed")
    return True


def generate_test_report():
    """Generate a coverage and JUnit report."""
    print("📊 Generating test report...")

    cmd = [
        sys.executable, '-m', 'pytest', 'tests/',
        '--cov=memorial_preview',
        '--cov-report=html:htmlcov',
        '--cov-report=term',
        '--junitxml=test_results.xml',
        '-v'
    ]

    result = subprocess.run(cmd)

    if result.returncode == 0:
        print("✅ Test report generated successfully!")
        print("📁 HTML coverage report: htmlcov/index.html")
        print("📄 JUnit XML report: test_results.xml")

    return result.returncode


def main():
    """Main test runner function."""
    parser = argparse.ArgumentParser(
        description="Test runner for the memorial preview renderer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_tests.py                    # Run all tests
  python run_tests.py --unit             # Run only unit tests
  python run_tests.py --render           # Run renderer and proof tests
  python run_tests.py --coverage         # Run with coverage report
  python run_tests.py --check-deps       # Check dependencies
  python run_tests.py --report           # Generate full report
  python run_tests.py --test tests/test_typeset.py::TestTypesetTribute::test_floor_is_never_crossed
        """
    )

    parser.add_argument('--unit', action='store_true',
                        help='Run only unit tests')
    parser.add_argument('--render', action='store_true',
                        help='Run only renderer and proof tests')
    parser.add_argument('--coverage', action='store_true',
                        help='Generate coverage report')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Verbose output')
    parser.add_argument('--check-deps', action='store_true',
                        help='Check if test dependencies are installed')
    parser.add_argument('--report', action='store_true',
                        help='Generate comprehensive test report')
    parser.add_argument('--test', type=str,
                        help='Run specific test file or function')

    args = parser.parse_args()

    setup_test_environment()

    if args.check_deps:
        return 0 if check_dependencies() else 1

    if args.report:
        return generate_test_report()

    if not check_dependencies():
        print("\n⚠️  Some dependencies are missing. Tests may fail.")
        return 1

    if args.test:
        return run_pytest([args.test], args.verbose, label=f"specific test: {args.test}")
    elif args.unit:
        return run_pytest(UNIT_TESTS, args.verbose, args.coverage, label="unit tests")
    elif args.render:
        return run_pytest(RENDER_TESTS, args.verbose, args.coverage, label="renderer tests")
    else:
        return run_pytest(['tests/'], args.verbose, args.coverage, label="all tests")


if __name__ == '__main__':
    exit_code = main()
    sys.exit(exit_code)
