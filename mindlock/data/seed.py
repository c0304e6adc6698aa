"""
Sample courses and questions loaded into fresh stores.
"""

from typing import Any, Dict, List

SAMPLE_COURSES: List[Dict[str, Any]] = [
    {
        "id": "1",
        "name": "Data Structures & Algorithms",
        "description": "Fundamental algorithms and data structures for computer science",
        "questionTypes": ["implementation", "analysis"],
        "createdAt": "2023-10-15T00:00:00+00:00",
        "updatedAt": "2023-10-15T00:00:00+00:00",
    },
    {
        "id": "2",
        "name": "Machine Learning",
        "description": "Introduction to machine learning concepts and applications",
        "questionTypes": ["implementation", "theory"],
        "createdAt": "2023-11-02T00:00:00+00:00",
        "updatedAt": "2023-11-10T00:00:00+00:00",
    },
    {
        "id": "3",
        "name": "Web Development",
        "description": "Modern web development techniques and frameworks",
        "questionTypes": ["explanation"],
        "createdAt": "2023-09-20T00:00:00+00:00",
        "updatedAt": "2023-09-28T00:00:00+00:00",
    },
    {
        "id": "4",
        "name": "Operating Systems",
        "description": "Core concepts of operating systems and system programming",
        "questionTypes": ["implementation", "comparison"],
        "createdAt": "2023-08-12T00:00:00+00:00",
        "updatedAt": "2023-08-15T00:00:00+00:00",
    },
]

SAMPLE_QUESTIONS: List[Dict[str, Any]] = [
    {
        "id": "1",
        "title": "Binary Search Implementation",
        "content": (
            "Implement a binary search algorithm that finds the position of a "
            "target value within a sorted array."
        ),
        "difficulty": "medium",
        "course": "1",
        "tags": ["algorithms", "searching", "arrays"],
        "createdAt": "2023-10-16T00:00:00+00:00",
        "updatedAt": "2023-10-16T00:00:00+00:00",
        "hints": [
            "Think about dividing the array in half at each step",
            "Consider what happens when the target is less than or greater than the middle element",
            "Remember to handle the case when the target is not found",
        ],
        "timeEstimate": 15,
    },
    {
        "id": "2",
        "title": "Graph Traversal: BFS",
        "content": (
            "Implement a Breadth-First Search algorithm to traverse a graph "
            "represented as an adjacency list."
        ),
        "difficulty": "hard",
        "course": "1",
        "tags": ["algorithms", "graphs", "traversal"],
        "createdAt": "2023-10-18T00:00:00+00:00",
        "updatedAt": "2023-10-20T00:00:00+00:00",
        "hints": [
            "Use a queue data structure to keep track of nodes to visit",
            "Mark nodes as visited to avoid cycles",
            "Process all neighbors of a node before moving to the next level",
        ],
        "timeEstimate": 25,
    },
    {
        "id": "3",
        "title": "Linear Regression Implementation",
        "content": (
            "Implement a simple linear regression model from scratch using "
            "gradient descent."
        ),
        "difficulty": "hard",
        "course": "2",
        "tags": ["machine learning", "regression", "optimization"],
        "createdAt": "2023-11-05T00:00:00+00:00",
        "updatedAt": "2023-11-05T00:00:00+00:00",
        "hints": [
            "Start by defining the linear model equation: y = wx + b",
            "Compute the gradients of the loss function with respect to w and b",
            "Update the parameters using the learning rate and gradients",
        ],
        "timeEstimate": 30,
    },
    {
        "id": "4",
        "title": "React Component Lifecycle",
        "content": (
            "Explain the lifecycle methods of a React component and provide "
            "examples of when each should be used."
        ),
        "difficulty": "medium",
        "course": "3",
        "tags": ["react", "frontend", "components"],
        "createdAt": "2023-09-22T00:00:00+00:00",
        "updatedAt": "2023-09-22T00:00:00+00:00",
        "timeEstimate": 20,
    },
    {
        "id": "5",
        "title": "Process Scheduling Algorithms",
        "content": (
            "Implement and compare First-Come-First-Served (FCFS) and Shortest "
            "Job First (SJF) scheduling algorithms."
        ),
        "difficulty": "expert",
        "course": "4",
        "tags": ["operating systems", "scheduling", "algorithms"],
        "createdAt": "2023-08-14T00:00:00+00:00",
        "updatedAt": "2023-08-16T00:00:00+00:00",
        "timeEstimate": 45,
    },
]
